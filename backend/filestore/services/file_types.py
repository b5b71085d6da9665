"""File-type classification by extension."""
from enum import Enum


class FileType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    TEXT = "text"
    OTHER = "other"


IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".svg", ".tif", ".tiff", ".ico", ".heic"}
VIDEO_EXTS = {".mp4", ".avi", ".mov", ".wmv", ".flv", ".mkv", ".webm"}
AUDIO_EXTS = {".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a"}
DOCUMENT_EXTS = {".pdf", ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx", ".odt", ".ods", ".odp"}
TEXT_EXTS = {
    ".txt", ".md", ".markdown", ".csv", ".tsv", ".json", ".yaml", ".yml", ".xml",
    ".html", ".htm", ".css", ".js", ".ts", ".py", ".log", ".ini", ".toml", ".sh",
}

_EXT_GROUPS = (
    (FileType.IMAGE, IMAGE_EXTS),
    (FileType.VIDEO, VIDEO_EXTS),
    (FileType.AUDIO, AUDIO_EXTS),
    (FileType.DOCUMENT, DOCUMENT_EXTS),
    (FileType.TEXT, TEXT_EXTS),
)


def get_file_type(ext: str) -> FileType:
    """Map an extension (with or without the leading dot) to a category.

    Total: unknown and empty extensions map to ``FileType.OTHER``.
    """
    ext = (ext or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    for file_type, exts in _EXT_GROUPS:
        if ext in exts:
            return file_type
    return FileType.OTHER
