# shift_util.py
# Line collapse logic for the Powers game. Every function here works on a single
# one-dimensional line of tile values and only ever shifts tiles toward index 0.
# The grid controller in core.py presents rows and columns already oriented so
# that "leftward" is the right direction for the current move.

from typing import List, MutableSequence, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Shift(BaseModel):
    """
    One elementary move or merge within a line.

    `value` is the value held by the source tile(s) *before* the shift, not the
    doubled value a merge produces.
    """
    model_config = ConfigDict(frozen=True)

    old_index: int = Field(..., ge=0, description="Index of the (first) tile being moved.")
    new_index: int = Field(..., ge=0, description="Index the tile ends up at.")
    value: int = Field(..., gt=0, description="Value of the source tile(s) before the shift.")
    old_index2: Optional[int] = Field(
        default=None,
        ge=0,
        description="Index of the second tile of a merge; None for a plain move."
    )

    @computed_field  # type: ignore[misc]
    @property
    def is_merge(self) -> bool:
        return self.old_index2 is not None


# --- Line Scanning ---

def find_next_nonempty(line: Sequence[int], start: int) -> Optional[int]:
    """
    Finds the first nonempty cell at or after `start`.
    Args:
        line (Sequence[int]): The line to scan.
        start (int): Index at which to start looking.
    Returns:
        Optional[int]: Index of the first nonzero cell, or None if there is none.
    """
    for i in range(start, len(line)):
        if line[i] != 0:
            return i
    return None


def find_next_potential_shift(line: Sequence[int], index: int) -> Optional[Shift]:
    """
    Finds the shift that would move or merge a tile into `index`, if any.

    Only cells at `index` and to its right are examined, and the line is not
    modified. A tile merges only with the next nonempty tile to its right, and
    only when the two are equal; any unequal tile in between blocks the merge.
    Args:
        line (Sequence[int]): The line to inspect.
        index (int): Destination index of the shift.
    Returns:
        Optional[Shift]: The shift to `index`, or None if no shift is possible.
    """
    current = line[index]
    if current != 0:
        for i in range(index + 1, len(line)):
            if line[i] == current:
                return Shift(old_index=index, old_index2=i, new_index=index, value=current)
            if line[i] != 0:
                break
        return None

    nxt = find_next_nonempty(line, index)
    if nxt is None:
        return None
    moving = line[nxt]
    for i in range(nxt + 1, len(line)):
        if line[i] == moving:
            return Shift(old_index=nxt, old_index2=i, new_index=index, value=moving)
        if line[i] != 0:
            break
    return Shift(old_index=nxt, new_index=index, value=moving)


# --- Line Mutation ---

def apply_one_shift(line: MutableSequence[int], shift: Shift) -> None:
    """
    Updates the line in place according to the given shift. The shift is not
    checked against the current contents of the line.
    """
    line[shift.old_index] = 0
    if shift.old_index2 is None:
        line[shift.new_index] = shift.value
    else:
        line[shift.old_index2] = 0
        line[shift.new_index] = shift.value * 2


def collapse(line: MutableSequence[int]) -> List[Shift]:
    """
    Collapses the line toward index 0 and returns the shifts performed.

    Destination indices are visited once each, left to right, and every shift is
    applied before moving on, so a tile produced by a merge is never merged
    again in the same collapse: [2, 2, 4] becomes [4, 4, 0], not [8, 0, 0].
    Args:
        line (MutableSequence[int]): The line to collapse; modified in place.
    Returns:
        List[Shift]: The shifts applied, in order. Empty if nothing moved.
    """
    shifts: List[Shift] = []
    for index in range(len(line)):
        shift = find_next_potential_shift(line, index)
        if shift is not None:
            apply_one_shift(line, shift)
            shifts.append(shift)
    return shifts
