"""
Resource kinds and their MIME strings.

Google Drive identifies folders and Workspace documents by MIME type. The
kinds below cover what the library needs to reason about; anything else maps
to UNKNOWN while the raw string stays on the resource.
"""

import mimetypes
from enum import Enum

FOLDER_MIME = "application/vnd.google-apps.folder"
GOOGLE_APPS_PREFIX = "application/vnd.google-apps."

# Drive refuses exports above this size
EXPORT_SIZE_LIMIT = 10 * 1024 * 1024


class MimeType(Enum):
    UNKNOWN = "unknown/unknown"
    FOLDER = FOLDER_MIME
    SHORTCUT = "application/vnd.google-apps.shortcut"

    # Google Workspace documents
    GOOGLE_DOCUMENT = "application/vnd.google-apps.document"
    GOOGLE_SPREADSHEET = "application/vnd.google-apps.spreadsheet"
    GOOGLE_PRESENTATION = "application/vnd.google-apps.presentation"
    GOOGLE_DRAWING = "application/vnd.google-apps.drawing"
    GOOGLE_SCRIPT = "application/vnd.google-apps.script"
    GOOGLE_FORM = "application/vnd.google-apps.form"
    GOOGLE_SITE = "application/vnd.google-apps.site"

    # Export targets
    DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    PDF = "application/pdf"
    SCRIPT_JSON = "application/vnd.google-apps.script+json"
    CSV = "text/csv"

    # Plain files
    TXT = "text/plain"
    JPEG = "image/jpeg"
    PNG = "image/png"
    MKV = "video/x-matroska"
    FLV = "video/x-flv"
    MP4 = "video/mp4"
    MOV = "video/quicktime"
    AVI = "video/x-msvideo"
    WMV = "video/x-ms-wmv"

    @classmethod
    def from_string(cls, value: str | None) -> "MimeType":
        """Case-insensitive lookup; unrecognized strings map to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        return _BY_STRING.get(value.lower(), cls.UNKNOWN)

    @classmethod
    def from_filename(cls, filename: str) -> "MimeType":
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        return _BY_EXTENSION.get(ext, cls.UNKNOWN)

    @property
    def default_export(self) -> "MimeType | None":
        """Format used when a Workspace document is exported without a target."""
        return DEFAULT_EXPORTS.get(self)

    @property
    def is_google_app(self) -> bool:
        return self.value.startswith(GOOGLE_APPS_PREFIX)


_BY_STRING = {member.value.lower(): member for member in MimeType}

_BY_EXTENSION = {
    "txt": MimeType.TXT,
    "csv": MimeType.CSV,
    "pdf": MimeType.PDF,
    "docx": MimeType.DOCX,
    "xlsx": MimeType.XLSX,
    "pptx": MimeType.PPTX,
    "jpg": MimeType.JPEG,
    "jpeg": MimeType.JPEG,
    "png": MimeType.PNG,
    "mkv": MimeType.MKV,
    "flv": MimeType.FLV,
    "mp4": MimeType.MP4,
    "mov": MimeType.MOV,
    "avi": MimeType.AVI,
    "wmv": MimeType.WMV,
}

DEFAULT_EXPORTS = {
    MimeType.GOOGLE_DOCUMENT: MimeType.DOCX,
    MimeType.GOOGLE_SPREADSHEET: MimeType.XLSX,
    MimeType.GOOGLE_PRESENTATION: MimeType.PPTX,
    MimeType.GOOGLE_DRAWING: MimeType.PDF,
    MimeType.GOOGLE_SCRIPT: MimeType.SCRIPT_JSON,
}


def guess_content_type(filename: str) -> str:
    """Content type for an upload, falling back to application/octet-stream."""
    kind = MimeType.from_filename(filename)
    if kind is not MimeType.UNKNOWN:
        return kind.value
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"
