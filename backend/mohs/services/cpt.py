from __future__ import annotations

import math

COMPLEX_FIRST_STAGE = "17311"
COMPLEX_ADDITIONAL_STAGE = "17312"
ADDITIONAL_BLOCK_UNIT = "17313"
SIMPLE_FIRST_STAGE = "17314"
SIMPLE_ADDITIONAL_STAGE = "17315"

DEFAULT_BLOCKS_PER_STAGE = 5

# head, neck, hands, feet, genitalia and their named sub-locations
COMPLEX_LOCATION_KEYWORDS: tuple[str, ...] = (
    "head",
    "face",
    "neck",
    "scalp",
    "nose",
    "ear",
    "eyelid",
    "lip",
    "forehead",
    "cheek",
    "chin",
    "temple",
    "hand",
    "foot",
    "feet",
    "genitalia",
)


def is_complex_location(tumor_location: str | None) -> bool:
    location = (tumor_location or "").lower()
    return any(keyword in location for keyword in COMPLEX_LOCATION_KEYWORDS)


def extra_block_units(stage_count: int, total_block_count: int, blocks_per_stage: int = DEFAULT_BLOCKS_PER_STAGE) -> int:
    extra_blocks = max(0, int(total_block_count or 0) - blocks_per_stage * stage_count)
    return math.ceil(extra_blocks / blocks_per_stage)


def calculate_codes(
    tumor_location: str | None,
    stage_count: int,
    total_block_count: int,
    *,
    blocks_per_stage: int = DEFAULT_BLOCKS_PER_STAGE,
) -> list[str]:
    """
    Mohs procedure codes for a case: one first-stage code, one add-on per
    additional stage, and one block add-on per started group of extra blocks
    beyond the per-stage baseline. Duplicates are kept; each unit bills.
    """
    if stage_count is None or stage_count < 1:
        return []

    complex_site = is_complex_location(tumor_location)
    codes = [COMPLEX_FIRST_STAGE if complex_site else SIMPLE_FIRST_STAGE]
    additional_code = COMPLEX_ADDITIONAL_STAGE if complex_site else SIMPLE_ADDITIONAL_STAGE
    codes.extend(additional_code for _ in range(stage_count - 1))
    codes.extend(
        ADDITIONAL_BLOCK_UNIT for _ in range(extra_block_units(stage_count, total_block_count, blocks_per_stage))
    )
    return codes


def unique_codes(*code_lists: list[str] | None) -> list[str]:
    seen: dict[str, None] = {}
    for codes in code_lists:
        for code in codes or []:
            seen.setdefault(code, None)
    return list(seen)
