import pytest

from errors import IndexOutOfRange, InvalidOperation
from history import ORIGINAL_PROMPT, EditHistory
from image_utils import ImageRef


def ref(name):
    return ImageRef(name.encode(), "image/png", f"{name}.png")


A, B, C = ref("A"), ref("B"), ref("C")


def snapshot(history):
    return [(e.prompt_text, e.image_ref) for e in history], history.active_index


def test_new_history_is_empty():
    history = EditHistory()
    assert history.is_empty
    assert len(history) == 0
    assert history.active_index == 0
    assert history.current() is None
    assert history.original() is None
    assert history.edited() is None


def test_reset_creates_single_original_entry():
    history = EditHistory()
    history.reset(A)
    history.append_edit("add hat", B)

    entry = history.reset(C)

    assert len(history) == 1
    assert history.active_index == 0
    assert entry.prompt_text == ORIGINAL_PROMPT == "Original"
    assert history.original().image_ref is C
    assert history.current() is history.original()


@pytest.mark.parametrize("n", [0, 1, 2, 5])
def test_n_edits_after_reset(n):
    history = EditHistory()
    history.reset(A)
    for i in range(n):
        history.append_edit(f"edit {i}", ref(f"r{i}"))

    assert len(history) == n + 1
    assert history.active_index == n
    assert history.original().image_ref is A


@pytest.mark.parametrize("k", [0, 1, 2, 3])
def test_select_then_append_truncates_after_selection(k):
    history = EditHistory()
    history.reset(A)
    for i in range(4):
        history.append_edit(f"edit {i}", ref(f"r{i}"))
    kept = list(history.entries[:k + 1])

    history.select(k)
    new = history.append_edit("branch", C)

    assert len(history) == k + 2
    assert list(history.entries[:k + 1]) == kept
    assert history.entries[-1] is new
    assert history.active_index == k + 1


@pytest.mark.parametrize("prompt", ["", "   ", "\n\t", None])
def test_blank_prompt_is_rejected_without_changes(prompt):
    history = EditHistory()
    history.reset(A)
    history.append_edit("add hat", B)
    history.select(0)
    before = snapshot(history)

    with pytest.raises(InvalidOperation):
        history.append_edit(prompt, C)

    assert snapshot(history) == before


def test_append_without_upload_is_rejected():
    history = EditHistory()
    with pytest.raises(InvalidOperation, match="upload an image"):
        history.append_edit("add hat", B)
    assert history.is_empty


@pytest.mark.parametrize("index", [-1, 2, 10])
def test_select_out_of_range(index):
    history = EditHistory()
    history.reset(A)
    history.append_edit("add hat", B)

    with pytest.raises(IndexOutOfRange):
        history.select(index)
    assert history.active_index == 1


def test_select_on_empty_history():
    with pytest.raises(IndexError):
        EditHistory().select(0)


def test_hat_then_glasses_scenario():
    history = EditHistory()
    history.reset(A)
    assert snapshot(history) == ([("Original", A)], 0)

    history.append_edit("add hat", B)
    assert snapshot(history) == ([("Original", A), ("add hat", B)], 1)

    history.select(0)
    history.append_edit("add glasses", C)
    assert snapshot(history) == ([("Original", A), ("add glasses", C)], 1)


def test_edited_is_hidden_while_original_is_active():
    history = EditHistory()
    history.reset(A)
    history.append_edit("add hat", B)

    assert history.edited().image_ref is B
    history.select(0)
    assert history.edited() is None
    assert history.current().image_ref is A


def test_reset_bumps_epoch():
    history = EditHistory()
    history.reset(A)
    epoch = history.epoch
    history.append_edit("add hat", B)
    assert history.epoch == epoch
    history.reset(C)
    assert history.epoch == epoch + 1


def test_serials_are_never_reused():
    history = EditHistory()
    history.reset(A)
    first = history.append_edit("add hat", B)
    history.select(0)
    second = history.append_edit("add glasses", C)
    assert second.serial != first.serial


def test_to_dict():
    history = EditHistory()
    history.reset(A)
    history.append_edit("add hat", B)

    data = history.to_dict(lambda index, entry: f"/img/{index}?v={entry.serial}")

    assert data["has_image"] is True
    assert data["filename"] == "A.png"
    assert data["active_index"] == 1
    assert [e["prompt"] for e in data["entries"]] == ["Original", "add hat"]
    assert data["original_url"] == data["entries"][0]["url"]
    assert data["edited_url"] == data["entries"][1]["url"]


def test_to_dict_empty():
    data = EditHistory().to_dict()
    assert data == {
        "has_image": False,
        "filename": None,
        "active_index": 0,
        "entries": [],
        "original_url": None,
        "edited_url": None,
    }
