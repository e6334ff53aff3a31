"""Record and file upload against the repository API."""

from figbatch.upload.client import (
    FilePart,
    RepositoryClient,
    RepositoryContext,
    RepositoryError,
    UploadManifest,
)
from figbatch.upload.files import (
    FileAccessUnsupportedError,
    NoRootDirError,
    compute_md5,
    upload_files,
)
from figbatch.upload.orchestrator import RecordUploadOrchestrator
from figbatch.upload.payload import (
    PayloadError,
    UploadRowData,
    build_article_payload,
    prepare_upload_data,
)

__all__ = [
    "FileAccessUnsupportedError",
    "FilePart",
    "NoRootDirError",
    "PayloadError",
    "RecordUploadOrchestrator",
    "RepositoryClient",
    "RepositoryContext",
    "RepositoryError",
    "UploadManifest",
    "UploadRowData",
    "build_article_payload",
    "compute_md5",
    "prepare_upload_data",
    "upload_files",
]
