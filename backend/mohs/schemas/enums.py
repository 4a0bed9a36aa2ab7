from __future__ import annotations

from enum import Enum


class CaseStatus(str, Enum):
    SCHEDULED = "scheduled"
    PRE_OP = "pre_op"
    IN_PROGRESS = "in_progress"
    CLOSURE = "closure"
    POST_OP = "post_op"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class StageMarginStatus(str, Enum):
    PENDING = "pending"
    NEGATIVE = "negative"
    POSITIVE = "positive"
    PARTIAL = "partial"


class BlockMarginStatus(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    CLOSE = "close"
    INDETERMINATE = "indeterminate"


class Laterality(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    MIDLINE = "midline"
    BILATERAL = "bilateral"


class ClosureType(str, Enum):
    PRIMARY = "primary"
    COMPLEX_LINEAR = "complex_linear"
    ADVANCEMENT_FLAP = "advancement_flap"
    ROTATION_FLAP = "rotation_flap"
    TRANSPOSITION_FLAP = "transposition_flap"
    INTERPOLATION_FLAP = "interpolation_flap"
    FULL_THICKNESS_GRAFT = "full_thickness_graft"
    SPLIT_THICKNESS_GRAFT = "split_thickness_graft"
    SECONDARY_INTENTION = "secondary_intention"
    DELAYED = "delayed"
    REFERRED = "referred"


class MapType(str, Enum):
    TUMOR = "tumor"
    PRE_OP = "pre_op"
    STAGE = "stage"
    CUMULATIVE = "cumulative"
    CLOSURE = "closure"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]
