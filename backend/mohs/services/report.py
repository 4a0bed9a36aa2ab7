from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.orm import Session

from mohs.core.config import get_settings
from mohs.core.errors import NotFoundError
from mohs.db.reference import describe_codes
from mohs.schemas.case import CaseSnapshot
from mohs.schemas.closure import ClosureRead
from mohs.schemas.report import CaseReport
from mohs.schemas.stage import BlockRead, StageSnapshot
from mohs.services.cases import CaseManager
from mohs.services.cpt import DEFAULT_BLOCKS_PER_STAGE, calculate_codes, unique_codes

NOT_DOCUMENTED = "Not yet documented"
SECTION_RULE = "-" * 30

_BLOCK_GLYPHS = {"positive": "+", "negative": "-"}


def _num(value: float | int | None) -> str:
    if value is None:
        return "?"
    return f"{float(value):.10f}".rstrip("0").rstrip(".")


def _glyph(status: str | None) -> str:
    return _BLOCK_GLYPHS.get(status or "", "~")


def _section(lines: list[str], title: str) -> None:
    lines.append(title)
    lines.append(SECTION_RULE)


def report_codes(snapshot: CaseSnapshot, blocks_per_stage: int = DEFAULT_BLOCKS_PER_STAGE) -> list[str]:
    computed = calculate_codes(
        snapshot.case.tumor_location,
        len(snapshot.stages),
        snapshot.total_block_count,
        blocks_per_stage=blocks_per_stage,
    )
    return unique_codes(snapshot.case.mohs_cpt_codes, snapshot.case.repair_cpt_codes, computed)


def _block_line(block: BlockRead) -> str:
    line = f"    Block {block.block_label}: {_glyph(block.margin_status)} ({block.position or 'unspecified'})"
    if block.deep_margin_status:
        line += f" deep {_glyph(block.deep_margin_status)}"
    if block.tumor_type_found:
        line += f" [{block.tumor_type_found}]"
    return line


def _stage_lines(stage: StageSnapshot) -> list[str]:
    lines = [f"Stage {stage.stage_number}:", f"  Margin Status: {(stage.margin_status or 'pending').upper()}"]
    if stage.excision_width_mm or stage.excision_length_mm:
        lines.append(f"  Excision Size: {_num(stage.excision_width_mm)}mm x {_num(stage.excision_length_mm)}mm")
    if stage.excision_depth_mm:
        lines.append(f"  Excision Depth: {_num(stage.excision_depth_mm)}mm")
    if stage.stain_type:
        lines.append(f"  Stain: {stage.stain_type}")
    if stage.blocks:
        lines.append(f"  Tissue Blocks: {len(stage.blocks)}")
        lines.extend(_block_line(block) for block in stage.blocks)
    if stage.notes:
        lines.append(f"  Notes: {stage.notes}")
    return lines


def _flap_graft_lines(details: Mapping[str, Any]) -> list[str]:
    if not details:
        return []
    lines = ["Flap/Graft Details:"]
    for key in sorted(details):
        label = key.replace("_", " ").capitalize()
        lines.append(f"  {label}: {details[key]}")
    return lines


def _closure_lines(closure: ClosureRead) -> list[str]:
    lines = [f"Type: {closure.closure_type}{f' - {closure.closure_subtype}' if closure.closure_subtype else ''}"]
    if closure.repair_length_cm:
        width = f" x {_num(closure.repair_width_cm)}cm" if closure.repair_width_cm else ""
        lines.append(f"Repair Size: {_num(closure.repair_length_cm)}cm{width}")
    if closure.repair_area_sq_cm:
        lines.append(f"Repair Area: {_num(closure.repair_area_sq_cm)} sq cm")
    lines.extend(_flap_graft_lines(closure.flap_graft_details))
    if closure.suture_layers or closure.deep_sutures or closure.superficial_sutures:
        parts = []
        if closure.suture_layers:
            parts.append(f"{closure.suture_layers} layer(s)")
        if closure.deep_sutures:
            parts.append(f"deep {closure.deep_sutures}")
        if closure.superficial_sutures:
            parts.append(f"superficial {closure.superficial_sutures}")
        lines.append(f"Sutures: {', '.join(parts)}")
    if closure.suture_removal_days:
        lines.append(f"Suture Removal: {closure.suture_removal_days} days")
    if closure.dressing_type or closure.pressure_dressing:
        dressing = closure.dressing_type or "standard"
        lines.append(f"Dressing: {dressing}{' (pressure)' if closure.pressure_dressing else ''}")
    if closure.closure_notes:
        lines.append(f"Notes: {closure.closure_notes}")
    if closure.technique_notes:
        lines.append(f"Technique: {closure.technique_notes}")
    return lines


def generate_report(
    snapshot: CaseSnapshot,
    code_descriptions: Mapping[str, str] | None = None,
    *,
    now: datetime | None = None,
    blocks_per_stage: int = DEFAULT_BLOCKS_PER_STAGE,
) -> CaseReport:
    """
    Deterministic operative report for a case snapshot. The only input outside
    the snapshot is ``now`` for the signature date. Optional data that is
    missing renders as a placeholder or is omitted; it never raises.
    """
    case = snapshot.case
    descriptions = code_descriptions or {}
    now = now or datetime.now(timezone.utc)
    surgeon_name = snapshot.surgeon.full_name if snapshot.surgeon else None

    lines: list[str] = ["MOHS MICROGRAPHIC SURGERY OPERATIVE REPORT", "=" * 50, ""]

    _section(lines, "PATIENT INFORMATION")
    patient = snapshot.patient
    lines.append(f"Patient: {patient.full_name if patient else NOT_DOCUMENTED}")
    lines.append(f"MRN: {(patient.mrn if patient else None) or NOT_DOCUMENTED}")
    dob = patient.dob.isoformat() if patient and patient.dob else NOT_DOCUMENTED
    lines.append(f"DOB: {dob}")
    lines.append(f"Case Number: {case.case_number}")
    lines.append(f"Date of Surgery: {case.case_date.isoformat()}")
    lines.append(f"Surgeon: {surgeon_name or NOT_DOCUMENTED}")
    if snapshot.assistant:
        lines.append(f"Assistant: {snapshot.assistant.full_name}")
    lines.append("")

    _section(lines, "PREOPERATIVE DIAGNOSIS")
    lines.append(f"{case.tumor_type}{f' ({case.tumor_subtype})' if case.tumor_subtype else ''}")
    lines.append(f"Location: {case.tumor_location}{f' ({case.tumor_laterality})' if case.tumor_laterality else ''}")
    if case.tumor_histology:
        lines.append(f"Histology: {case.tumor_histology}")
    if case.prior_pathology_diagnosis:
        lines.append(f"Prior Pathology: {case.prior_pathology_diagnosis}")
    if case.pre_op_size_mm:
        lines.append(f"Pre-operative Size: {_num(case.pre_op_size_mm)}mm")
    lines.append("")

    _section(lines, "ANESTHESIA")
    lines.append(f"Type: {(case.anesthesia_type or 'local').capitalize()}")
    if case.anesthesia_agent:
        volume = f" ({_num(case.anesthesia_volume_ml)}mL)" if case.anesthesia_volume_ml else ""
        lines.append(f"Agent: {case.anesthesia_agent}{volume}")
    lines.append("")

    _section(lines, "MOHS STAGES")
    if snapshot.stages:
        for stage in snapshot.stages:
            lines.extend(_stage_lines(stage))
    else:
        lines.append(NOT_DOCUMENTED)
    lines.append("")

    _section(lines, "FINAL DEFECT")
    if case.final_defect_size_mm:
        lines.append(f"Size: {_num(case.final_defect_size_mm)}mm")
    if case.final_defect_width_mm and case.final_defect_length_mm:
        lines.append(f"Dimensions: {_num(case.final_defect_width_mm)}mm x {_num(case.final_defect_length_mm)}mm")
    lines.append(f"Total Stages: {len(snapshot.stages)}")
    lines.append("")

    _section(lines, "CLOSURE/REPAIR")
    closure = snapshot.latest_closure
    if closure:
        lines.extend(_closure_lines(closure))
    else:
        lines.append(f"Type: {case.closure_type or NOT_DOCUMENTED}")
    lines.append("")

    _section(lines, "CPT CODES")
    codes = report_codes(snapshot, blocks_per_stage)
    if codes:
        lines.extend(f"  {code}: {descriptions.get(code, 'Unknown')}" for code in codes)
    else:
        lines.append(f"  {NOT_DOCUMENTED}")
    lines.append("")

    if case.post_op_notes:
        _section(lines, "POST-OPERATIVE NOTES")
        lines.append(case.post_op_notes)
        lines.append("")

    if case.complications:
        _section(lines, "COMPLICATIONS")
        lines.append(case.complications)
        lines.append("")

    lines.append("")
    lines.append("_" * 40)
    lines.append(f"{surgeon_name or 'Surgeon'}, MD")
    lines.append(f"Date: {now.strftime('%m/%d/%Y')}")

    return CaseReport(case_id=case.id, report="\n".join(lines), cpt_codes=codes)


def build_case_report(db: Session, tenant_id: str, case_id: int, *, now: datetime | None = None) -> CaseReport:
    snapshot = CaseManager(db).get_case(tenant_id, case_id)
    if snapshot is None:
        raise NotFoundError("Mohs case", case_id)
    blocks_per_stage = get_settings().mohs_blocks_per_stage
    descriptions = describe_codes(db, report_codes(snapshot, blocks_per_stage))
    return generate_report(snapshot, descriptions, now=now, blocks_per_stage=blocks_per_stage)
