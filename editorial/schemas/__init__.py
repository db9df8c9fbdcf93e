from .record import (
    EditAction,
    EditorEdit,
    EditorEditRequest,
    EditorState,
    GalleryUploadResponse,
    ListViewResponse,
    PendingRename,
    ReconcileResponse,
    SaveResponse,
    SlugCheckResponse,
    SlugifyResponse,
    UploadResponse,
)

# Define the public API of this module
__all__ = [
    "EditAction",
    "EditorEdit",
    "EditorEditRequest",
    "EditorState",
    "GalleryUploadResponse",
    "ListViewResponse",
    "PendingRename",
    "ReconcileResponse",
    "SaveResponse",
    "SlugCheckResponse",
    "SlugifyResponse",
    "UploadResponse",
]
