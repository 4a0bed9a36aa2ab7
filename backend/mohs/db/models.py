from datetime import date, datetime, timezone
from sqlalchemy import String, Date, DateTime, ForeignKey, Float, Boolean, Text, JSON, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mohs.db.session import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Patient(Base):
    """Directory row owned by the surrounding application; read for display only."""

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    first_name: Mapped[str] = mapped_column(String(128))
    last_name: Mapped[str] = mapped_column(String(128))
    mrn: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)


class Provider(Base):
    """Directory row owned by the surrounding application; read for display only."""

    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    first_name: Mapped[str] = mapped_column(String(128))
    last_name: Mapped[str] = mapped_column(String(128))


class MohsCase(Base):
    __tablename__ = "mohs_cases"
    __table_args__ = (UniqueConstraint("tenant_id", "case_number", name="uq_mohs_cases_case_number"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    case_number: Mapped[str] = mapped_column(String(50), index=True)
    patient_id: Mapped[str] = mapped_column(String(64), index=True)
    surgeon_id: Mapped[str] = mapped_column(String(64), index=True)
    assistant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    encounter_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    case_date: Mapped[date] = mapped_column(Date, index=True)

    tumor_location: Mapped[str] = mapped_column(String(255))
    tumor_location_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tumor_laterality: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tumor_type: Mapped[str] = mapped_column(String(100), index=True)
    tumor_subtype: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tumor_histology: Mapped[str | None] = mapped_column(String(255), nullable=True)
    clinical_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    pre_op_size_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    pre_op_width_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    pre_op_length_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    pre_op_depth_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_defect_size_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_defect_width_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_defect_length_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_defect_depth_mm: Mapped[float | None] = mapped_column(Float, nullable=True)

    prior_biopsy_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    prior_pathology_diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    prior_pathology_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    anesthesia_type: Mapped[str | None] = mapped_column(String(100), default="local", nullable=True)
    anesthesia_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    anesthesia_volume_ml: Mapped[float | None] = mapped_column(Float, nullable=True)

    pre_op_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    post_op_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    operative_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    complications: Mapped[str | None] = mapped_column(Text, nullable=True)
    consent_obtained: Mapped[bool] = mapped_column(Boolean, default=False)

    status: Mapped[str] = mapped_column(String(50), default="scheduled", index=True)
    total_stages: Mapped[int] = mapped_column(Integer, default=0)
    start_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    closure_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    closure_subtype: Mapped[str | None] = mapped_column(String(100), nullable=True)
    closure_performed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    mohs_cpt_codes: Mapped[list | None] = mapped_column(JSON, default=list, nullable=True)
    repair_cpt_codes: Mapped[list | None] = mapped_column(JSON, default=list, nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MohsStage(Base):
    __tablename__ = "mohs_stages"
    __table_args__ = (UniqueConstraint("case_id", "stage_number", name="uq_mohs_stages_number"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("mohs_cases.id"), index=True)
    stage_number: Mapped[int] = mapped_column(Integer)

    excision_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    frozen_section_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    reading_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    margin_status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    margin_status_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    tissue_processor: Mapped[str | None] = mapped_column(String(100), nullable=True)
    histology_tech: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stain_type: Mapped[str | None] = mapped_column(String(100), default="H&E", nullable=True)

    excision_width_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    excision_length_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    excision_depth_mm: Mapped[float | None] = mapped_column(Float, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    pathologist_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    block_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MohsStageBlock(Base):
    __tablename__ = "mohs_stage_blocks"
    __table_args__ = (UniqueConstraint("stage_id", "block_label", name="uq_mohs_blocks_label"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    stage_id: Mapped[int] = mapped_column(ForeignKey("mohs_stages.id"), index=True)
    block_label: Mapped[str] = mapped_column(String(10))

    position: Mapped[str | None] = mapped_column(String(50), nullable=True)
    position_degrees: Mapped[int | None] = mapped_column(Integer, nullable=True)
    margin_status: Mapped[str] = mapped_column(String(20))
    deep_margin_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    depth_mm: Mapped[float | None] = mapped_column(Float, nullable=True)
    tumor_type_found: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tumor_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MohsClosure(Base):
    __tablename__ = "mohs_closures"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("mohs_cases.id"), index=True)

    closure_type: Mapped[str] = mapped_column(String(100))
    closure_subtype: Mapped[str | None] = mapped_column(String(100), nullable=True)
    closure_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    closure_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    repair_length_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    repair_width_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    repair_area_sq_cm: Mapped[float | None] = mapped_column(Float, nullable=True)
    repair_cpt_codes: Mapped[list | None] = mapped_column(JSON, default=list, nullable=True)
    flap_graft_details: Mapped[dict | None] = mapped_column(JSON, default=dict, nullable=True)

    suture_layers: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deep_sutures: Mapped[str | None] = mapped_column(String(100), nullable=True)
    superficial_sutures: Mapped[str | None] = mapped_column(String(100), nullable=True)
    suture_removal_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dressing_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pressure_dressing: Mapped[bool] = mapped_column(Boolean, default=False)

    closure_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    technique_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class MohsMap(Base):
    __tablename__ = "mohs_maps"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    case_id: Mapped[int] = mapped_column(ForeignKey("mohs_cases.id"), index=True)
    stage_id: Mapped[int | None] = mapped_column(ForeignKey("mohs_stages.id"), nullable=True, index=True)

    map_type: Mapped[str] = mapped_column(String(50), default="tumor")
    map_svg: Mapped[str | None] = mapped_column(Text, nullable=True)
    annotations: Mapped[list | None] = mapped_column(JSON, default=list, nullable=True)
    orientation_12_oclock: Mapped[str | None] = mapped_column(String(50), nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1)

    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class CptReference(Base):
    __tablename__ = "mohs_cpt_reference"

    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    description: Mapped[str] = mapped_column(Text)
    category: Mapped[str] = mapped_column(String(50), index=True)
    body_area: Mapped[str | None] = mapped_column(String(50), nullable=True)
    stage_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
