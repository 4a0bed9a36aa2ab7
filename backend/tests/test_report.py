from datetime import datetime

import pytest

from mohs.core.errors import NotFoundError
from mohs.services.report import NOT_DOCUMENTED, _num, build_case_report, generate_report

TENANT = "clinic-a"
SIGNED = datetime(2024, 3, 15, 9, 30)


def _section(report, title):
    lines = report.split("\n")
    start = lines.index(title)
    body = []
    for line in lines[start + 2 :]:
        if not line:
            break
        body.append(line)
    return body


@pytest.fixture
def worked_case(make_case, stage_tracker, case_manager, directory):
    case = make_case(tumor_laterality="left", tumor_subtype="nodular")
    first = stage_tracker.add_stage(
        TENANT, case.id, {"stage_number": 1, "excision_width_mm": 10, "excision_length_mm": 12}
    )
    stage_tracker.record_margins(
        TENANT,
        first.id,
        [
            {"block_label": "A", "position": "12-3", "margin_status": "positive", "tumor_type_found": "BCC"},
            {"block_label": "B", "position": "3-6", "margin_status": "negative", "deep_margin_status": "close"},
        ],
    )
    second = stage_tracker.add_stage(TENANT, case.id, {"stage_number": 2})
    stage_tracker.record_margins(TENANT, second.id, [{"block_label": "A", "margin_status": "negative"}])
    case_manager.close_case(
        TENANT,
        case.id,
        {
            "closure_type": "advancement_flap",
            "repair_length_cm": 2.5,
            "repair_width_cm": 1.5,
            "repair_cpt_codes": ["14040"],
            "flap_graft_details": {"donor_site": "nasolabial fold"},
        },
        actor="doc-1",
    )
    return case


class TestCaseReport:
    def test_full_report_sections(self, db, worked_case):
        result = build_case_report(db, TENANT, worked_case.id, now=SIGNED)
        report = result.report

        assert report.startswith("MOHS MICROGRAPHIC SURGERY OPERATIVE REPORT")
        assert "Patient: Ada Lovelace" in report
        assert "MRN: MRN-0001" in report
        assert "Case Number: MOHS-2024-0001" in report
        assert "BCC (nodular)" in report
        assert "Location: left cheek (left)" in report
        assert "Stage 1:" in report and "Stage 2:" in report
        assert "  Margin Status: POSITIVE" in report
        assert "    Block A: + (12-3) [BCC]" in report
        assert "    Block B: - (3-6) deep ~" in report
        assert "Type: advancement_flap" in report
        assert "Repair Size: 2.5cm x 1.5cm" in report
        assert "  Donor site: nasolabial fold" in report
        assert report.endswith("Frederic Mohs, MD\nDate: 03/15/2024")

    def test_codes_combine_stored_and_computed(self, db, worked_case):
        result = build_case_report(db, TENANT, worked_case.id, now=SIGNED)
        assert result.cpt_codes == ["14040", "17311", "17312"]
        codes = _section(result.report, "CPT CODES")
        assert codes[0].startswith("  14040: Adjacent tissue transfer")
        assert codes[1].startswith("  17311: Mohs micrographic technique")

    def test_case_without_closure_or_stages(self, db, make_case):
        case = make_case()
        result = build_case_report(db, TENANT, case.id, now=SIGNED)
        assert _section(result.report, "CLOSURE/REPAIR") == [f"Type: {NOT_DOCUMENTED}"]
        assert _section(result.report, "MOHS STAGES") == [NOT_DOCUMENTED]
        assert "Patient: " + NOT_DOCUMENTED in result.report
        assert result.cpt_codes == []
        assert "Surgeon, MD" in result.report

    def test_optional_sections_only_when_present(self, db, make_case, case_manager):
        case = make_case()
        assert "COMPLICATIONS" not in build_case_report(db, TENANT, case.id, now=SIGNED).report
        case_manager.update_case_details(TENANT, case.id, {"complications": "Minor bleeding"})
        report = build_case_report(db, TENANT, case.id, now=SIGNED).report
        assert _section(report, "COMPLICATIONS") == ["Minor bleeding"]

    def test_unknown_code_description(self, db, make_case, case_manager):
        case = make_case()
        case_manager.update_case_details(TENANT, case.id, {"mohs_cpt_codes": ["99999"]})
        report = build_case_report(db, TENANT, case.id, now=SIGNED).report
        assert "  99999: Unknown" in report

    def test_report_is_deterministic(self, db, case_manager, worked_case):
        snapshot = case_manager.get_case(TENANT, worked_case.id)
        assert generate_report(snapshot, now=SIGNED) == generate_report(snapshot, now=SIGNED)

    def test_missing_case(self, db):
        with pytest.raises(NotFoundError):
            build_case_report(db, TENANT, 12345)


@pytest.mark.parametrize(
    "value,expected",
    [
        (12, "12"),
        (12.0, "12"),
        (100.0, "100"),
        (2.5, "2.5"),
        (0.1, "0.1"),
        (1234567.5, "1234567.5"),
        (3.1234567, "3.1234567"),
        (None, "?"),
    ],
)
def test_measurements_render_without_exponent(value, expected):
    assert _num(value) == expected
