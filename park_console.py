from __future__ import annotations

from typing import Sequence

from park_catalog import SubjectRecord

LOADING_BAR_WIDTH = 30


class ConsoleInfoPanel:
    """Info card printed to the terminal; repeated calls for the same subject are ignored."""

    def __init__(self):
        self.current_name: str | None = None

    def show_info(self, record: SubjectRecord) -> None:
        if self.current_name == record.name:
            return
        self.current_name = record.name
        print(f"[info] {record.name} | {record.height:g}m | {record.description}")

    def hide_info(self) -> None:
        if self.current_name is None:
            return
        self.current_name = None
        print("[info] (no subject in view)")

    def on_subject_hover(self, record: SubjectRecord | None) -> None:
        if record is None:
            self.hide_info()
        else:
            self.show_info(record)


def format_progress(percent: int, message: str, width: int = LOADING_BAR_WIDTH) -> str:
    filled = int(width * percent / 100)
    bar = "#" * filled + "." * (width - filled)
    return f"[{bar}] {percent:3d}% {message}"


def print_progress(percent: int, message: str) -> None:
    print(format_progress(percent, message))


def print_subject_list(catalog: Sequence[SubjectRecord], key_count: int = 10) -> None:
    # tecla 1 -> indice 0, ..., tecla 0 -> indice 9
    print("[info] Travel keys:")
    for index, record in enumerate(catalog[:key_count]):
        print(f"    {(index + 1) % 10}: {record.name}")
