from __future__ import annotations

WRITE_ALWAYS = "always"
WRITE_CHANGED = "changed"
WRITE_MODES = (WRITE_ALWAYS, WRITE_CHANGED)


def should_write(write_mode: str, source_changed: bool) -> bool:
    # Only the source feed's change flag counts; item pages never force a write.
    if write_mode == WRITE_ALWAYS:
        return True
    return source_changed
