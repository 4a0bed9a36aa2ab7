from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from mohs.db import models

# (code, description, category, body_area, stage_type, notes)
CPT_REFERENCE: list[tuple[str, str, str, str, str, str]] = [
    (
        "17311",
        "Mohs micrographic technique, including removal of all gross tumor, surgical excision of tissue "
        "specimens, mapping, color coding of specimens, microscopic examination of specimens by the surgeon, "
        "and histopathologic preparation including routine stain(s), head, neck, hands, feet, genitalia, or "
        "any location with surgery directly involving muscle, cartilage, bone, tendon, major nerves, or "
        "vessels; first stage, up to 5 tissue blocks",
        "mohs_excision",
        "head_neck",
        "first",
        "First stage, head/neck/hands/feet/genitalia",
    ),
    (
        "17312",
        "Mohs micrographic technique; each additional stage after the first stage, up to 5 tissue blocks",
        "mohs_excision",
        "head_neck",
        "additional",
        "Additional stage, head/neck/hands/feet/genitalia",
    ),
    (
        "17313",
        "Mohs micrographic technique; each additional block after the first 5 tissue blocks, any stage",
        "mohs_excision",
        "any",
        "any",
        "Additional tissue blocks beyond first 5",
    ),
    (
        "17314",
        "Mohs micrographic technique, including removal of all gross tumor, surgical excision of tissue "
        "specimens, mapping, color coding of specimens, microscopic examination of specimens by the surgeon, "
        "and histopathologic preparation including routine stain(s), trunk, arms, or legs; first stage, up "
        "to 5 tissue blocks",
        "mohs_excision",
        "trunk_extremities",
        "first",
        "First stage, trunk/arms/legs",
    ),
    (
        "17315",
        "Mohs micrographic technique; each additional stage after the first stage, up to 5 tissue blocks",
        "mohs_excision",
        "trunk_extremities",
        "additional",
        "Additional stage, trunk/arms/legs",
    ),
    ("12031", "Layer closure of wounds of scalp, axillae, trunk and/or extremities; 2.5 cm or less",
     "repair", "trunk_extremities", "any", "Intermediate repair"),
    ("12032", "Layer closure; 2.6 cm to 7.5 cm", "repair", "trunk_extremities", "any", "Intermediate repair"),
    ("12041", "Layer closure of wounds of neck, hands, feet and/or external genitalia; 2.5 cm or less",
     "repair", "head_neck", "any", "Intermediate repair"),
    ("12051", "Layer closure of wounds of face, ears, eyelids, nose, lips and/or mucous membranes; 2.5 cm or less",
     "repair", "head_neck", "any", "Intermediate repair, face"),
    ("12052", "Layer closure; 2.6 cm to 5.0 cm", "repair", "head_neck", "any", "Intermediate repair, face"),
    ("13131", "Complex repair, forehead, cheeks, chin, mouth, neck, axillae, genitalia, hands and/or feet; "
     "2.6 cm to 7.5 cm", "repair", "head_neck", "any", "Complex repair"),
    ("13132", "Complex repair; each additional 5 cm or less", "repair", "head_neck", "any", "Complex repair add-on"),
    ("14040", "Adjacent tissue transfer or rearrangement, forehead, cheeks, chin, mouth, neck, axillae, "
     "genitalia, hands and/or feet; defect 10 sq cm or less", "flap", "head_neck", "any", "Flap 10 sq cm or less"),
    ("14041", "Adjacent tissue transfer; defect 10.1 sq cm to 30.0 sq cm", "flap", "head_neck", "any",
     "Flap 10.1-30 sq cm"),
    ("14060", "Adjacent tissue transfer, eyelids, nose, ears and/or lips; defect 10 sq cm or less", "flap",
     "head_neck", "any", "Flap face 10 sq cm or less"),
    ("14061", "Adjacent tissue transfer; defect 10.1 sq cm to 30.0 sq cm", "flap", "head_neck", "any",
     "Flap face 10.1-30 sq cm"),
    ("15120", "Split-thickness autograft, face, scalp, eyelids, mouth, neck, ears, orbits, genitalia, hands, "
     "feet, and/or multiple digits; first 100 sq cm or less", "graft", "head_neck", "any", "Split graft face"),
    ("15200", "Full thickness graft, free, including direct closure of donor site, trunk; 20 sq cm or less",
     "graft", "trunk_extremities", "any", "Full thickness graft trunk"),
    ("15220", "Full thickness graft, scalp, arms, and/or legs; 20 sq cm or less", "graft", "any", "any",
     "Full thickness graft scalp/extremities"),
    ("15240", "Full thickness graft, face, eyelids, mouth, neck, ears, orbits, genitalia, hands, feet, and/or "
     "multiple digits; 20 sq cm or less", "graft", "head_neck", "any", "Full thickness graft face"),
]


def seed_cpt_reference(db: Session) -> int:
    existing = {code for (code,) in db.query(models.CptReference.code).all()}
    added = 0
    for code, description, category, body_area, stage_type, notes in CPT_REFERENCE:
        if code in existing:
            continue
        db.add(
            models.CptReference(
                code=code,
                description=description,
                category=category,
                body_area=body_area,
                stage_type=stage_type,
                notes=notes,
            )
        )
        added += 1
    db.commit()
    return added


def describe_codes(db: Session, codes: Iterable[str]) -> dict[str, str]:
    wanted = sorted(set(codes))
    if not wanted:
        return {}
    rows = db.query(models.CptReference).filter(models.CptReference.code.in_(wanted)).all()
    return {row.code: row.description for row in rows}


def list_cpt_reference(db: Session, category: str | None = None) -> list[models.CptReference]:
    query = db.query(models.CptReference)
    if category:
        query = query.filter(models.CptReference.category == category)
    return query.order_by(models.CptReference.code.asc()).all()
