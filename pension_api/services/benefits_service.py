import logging

from pension_api.extensions import db
from pension_api.models.pensioner import Pensioner
from pension_api.services.pension_calculator import PensionCalculationInput, calculate_pension

logger = logging.getLogger(__name__)


def apply_benefits(p: Pensioner):
    """Recompute the cached benefit columns on a pensioner row (no commit)."""
    res = calculate_pension(PensionCalculationInput(
        salary=p.salary,
        date_of_first_appointment=p.date_of_first_appointment,
        date_of_retirement=p.date_of_retirement,
        pension_scheme_type=p.pension_scheme_type,
        current_level=p.current_level,
    ))
    p.years_of_service = res.years_of_service
    p.gratuity_rate = res.gratuity_rate
    p.pension_rate = res.pension_rate
    p.total_gratuity = res.total_gratuity
    p.monthly_pension = res.monthly_pension
    return res


def recalculate_all() -> list:
    results = []
    for p in Pensioner.query.order_by(Pensioner.id.asc()).all():
        old = p.benefits_dict()
        res = apply_benefits(p)
        results.append({"pension_id": p.pension_id, "full_name": p.full_name,
                        "old_values": old, "new_values": res.as_dict()})
    db.session.commit()
    logger.info("recalculated benefits for %d pensioners", len(results))
    return results
