"""Line-based three-way merge and diff utilities.

Uses the ``merge3`` library for three-way merging (the same algorithm used
by Bazaar/Breezy) and ``difflib`` for unified diff generation.

Conflict markers follow Git convention with the merge order's side
labels: ``<<<<<<< ours``, ``=======``, ``>>>>>>> theirs``.
"""

from __future__ import annotations

import difflib

from merge3 import Merge3


def attempt_merge(
    base_content: str,
    our_content: str,
    their_content: str,
    our_label: str = "ours",
    their_label: str = "theirs",
) -> tuple[str, int]:
    """Perform a three-way merge of our and their changes against a base.

    Args:
        base_content: The common ancestor content.
        our_content: Our version.
        their_content: Their version.
        our_label: Label written after the start marker.
        their_label: Label written after the end marker.

    Returns:
        A tuple of ``(merged_text, conflict_count)`` where *merged_text*
        is the result of the merge (possibly containing conflict markers)
        and *conflict_count* is the number of conflicting regions.
    """
    m3 = Merge3(
        base_content.splitlines(True),
        our_content.splitlines(True),
        their_content.splitlines(True),
    )

    conflict_count = sum(
        1 for region in m3.merge_regions() if region[0] == "conflict"
    )

    merged_lines = m3.merge_lines(
        name_a=our_label,
        name_b=their_label,
        start_marker="<<<<<<<",
        mid_marker="=======",
        end_marker=">>>>>>>",
    )

    return "".join(merged_lines), conflict_count


def generate_diff(
    old_content: str,
    new_content: str,
    label_old: str = "old",
    label_new: str = "new",
) -> str:
    """Generate a unified diff between two strings.

    Args:
        old_content: The original content.
        new_content: The modified content.
        label_old: Label for the old file in the diff header.
        label_new: Label for the new file in the diff header.

    Returns:
        A unified diff string.  Empty string if the contents are identical.
    """
    diff_lines = difflib.unified_diff(
        old_content.splitlines(True),
        new_content.splitlines(True),
        fromfile=label_old,
        tofile=label_new,
    )

    return "".join(diff_lines)
