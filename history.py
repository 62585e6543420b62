"""Linear edit history for the image editor.

The history is a flat list of entries with one cursor. Entry 0 is the uploaded
original. Editing from an earlier entry throws away everything after it before
the new result is appended, so there is never more than one line of edits.
"""
from dataclasses import dataclass

from errors import IndexOutOfRange, InvalidOperation
from image_utils import ImageRef

ORIGINAL_PROMPT = "Original"


@dataclass(frozen=True)
class HistoryEntry:
    prompt_text: str
    image_ref: ImageRef
    # unique within one EditHistory, used to build cache-safe image URLs
    serial: int = 0


class EditHistory:
    def __init__(self):
        self._entries: list[HistoryEntry] = []
        self._active_index = 0
        self._serial = 0
        # bumped on every reset so callers can tell the image was replaced
        self.epoch = 0

    def _new_entry(self, prompt_text, image_ref):
        self._serial += 1
        return HistoryEntry(prompt_text, image_ref, self._serial)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def reset(self, source_image: ImageRef) -> HistoryEntry:
        """Start over from a freshly uploaded image."""
        entry = self._new_entry(ORIGINAL_PROMPT, source_image)
        self._entries = [entry]
        self._active_index = 0
        self.epoch += 1
        return entry

    def get(self, index: int) -> HistoryEntry:
        if not 0 <= index < len(self._entries):
            raise IndexOutOfRange(
                f"History index {index} is out of range (0..{len(self._entries) - 1})"
            )
        return self._entries[index]

    def select(self, index: int) -> HistoryEntry:
        entry = self.get(index)
        self._active_index = index
        return entry

    def append_edit(self, prompt_text: str, result_image_ref: ImageRef) -> HistoryEntry:
        """Record an edit made from the active entry.

        Entries after the active one are discarded before the new entry is
        appended. The new entry becomes active.
        """
        if not self._entries or not (prompt_text or "").strip():
            raise InvalidOperation("Please upload an image and provide an edit prompt.")

        entry = self._new_entry(prompt_text, result_image_ref)
        del self._entries[self._active_index + 1:]
        self._entries.append(entry)
        self._active_index = len(self._entries) - 1
        return entry

    def current(self) -> HistoryEntry | None:
        if not self._entries:
            return None
        return self._entries[self._active_index]

    def original(self) -> HistoryEntry | None:
        if not self._entries:
            return None
        return self._entries[0]

    def edited(self) -> HistoryEntry | None:
        """The active entry, unless the original itself is active."""
        if self._active_index == 0:
            return None
        return self.current()

    def to_dict(self, image_url=None) -> dict:
        """JSON summary for the editor UI.

        `image_url(index, entry)` returns the URL the browser should load for an
        entry; without it every URL is None.
        """
        image_url = image_url or (lambda index, entry: None)
        urls = [image_url(i, entry) for i, entry in enumerate(self._entries)]
        original = self.original()
        return {
            "has_image": original is not None,
            "filename": original.image_ref.filename if original else None,
            "active_index": self._active_index,
            "entries": [
                {"index": i, "prompt": entry.prompt_text, "url": urls[i]}
                for i, entry in enumerate(self._entries)
            ],
            "original_url": urls[0] if urls else None,
            "edited_url": urls[self._active_index] if self.edited() else None,
        }
