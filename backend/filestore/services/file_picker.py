"""File picker contract.

The actual dialog lives outside this service (desktop shell or web client).
The service only needs something that, given dialog options, returns the
chosen absolute paths or ``None`` on cancel.
"""
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel


class FileFilter(BaseModel):
    name: str
    extensions: list[str]  # without leading dot, "*" matches everything


class PickerOptions(BaseModel):
    title: Optional[str] = None
    default_path: Optional[str] = None
    filters: list[FileFilter] = []
    multiple: bool = False

    def merged(self, overrides: Optional["PickerOptions"]) -> "PickerOptions":
        """Return these options with any explicitly set fields of ``overrides`` applied."""
        if overrides is None:
            return self
        return PickerOptions.model_validate(
            {**self.model_dump(), **overrides.model_dump(exclude_unset=True)}
        )


DEFAULT_PICKER_OPTIONS = PickerOptions()


class FilePicker(Protocol):
    async def pick(self, options: PickerOptions) -> Optional[list[str]]:
        ...


class StaticFilePicker:
    """Picker over a selection that was already made by the client.

    Applies the extension filters and the single/multiple choice of the
    options the way a native dialog would.
    """

    def __init__(self, paths: Optional[list[str]]):
        self.paths = paths

    async def pick(self, options: PickerOptions) -> Optional[list[str]]:
        if self.paths is None:
            return None
        selected = [p for p in self.paths if _matches_filters(p, options.filters)]
        if not options.multiple:
            selected = selected[:1]
        return selected


def _matches_filters(path: str, filters: list[FileFilter]) -> bool:
    if not filters:
        return True
    ext = Path(path).suffix.lower().lstrip(".")
    for f in filters:
        allowed = {e.lower().lstrip(".") for e in f.extensions}
        if "*" in allowed or ext in allowed:
            return True
    return False
