from setuptools import find_packages, setup

setup(
    name="simple-gdrive",
    version="0.1.0",
    description="Path-based access to Google Drive: resolver, query builder and tree traversal",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "google-api-python-client>=2.100.0",
        "google-auth>=2.20.0",
        "google-auth-httplib2>=0.1.0",
        "httplib2>=0.19.0",
    ],
    entry_points={
        "console_scripts": [
            "simple-gdrive=simple_gdrive.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "build",
            "twine",
        ],
    },
)
