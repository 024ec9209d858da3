"""
Part updates, for one part or a selection of parts.

An update is one of three intents. When the operator form supplies several
fields at once, resolve_field_update picks exactly one of them:
quantity first, then material, then process alone.
"""
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Union

from fabquote.exceptions import ReferentialGap, ValidationError
from fabquote.models import Catalog, Part, PricingBlock
from fabquote.services.pricing_service import price_part, reprice_quantity, validate_quantity
from fabquote.services.tax_service import HOME_JURISDICTION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetQuantity:
    """New quantity; prices follow from the part's existing unit price."""
    quantity: int


@dataclass(frozen=True)
class SetMaterial:
    """New material, optionally with its process; full reprice from volume."""
    material_id: str
    process_id: Optional[str] = None


@dataclass(frozen=True)
class SetProcessOnly:
    """New process without a material; the material is cleared and pricing zeroed."""
    process_id: str


PartUpdate = Union[SetQuantity, SetMaterial, SetProcessOnly]


def resolve_field_update(process=None, material=None, quantity=None) -> PartUpdate:
    """
    Map the optional-field form of an update to a single intent.

    Raises:
        ValidationError: If no field is given or quantity is invalid
    """
    if quantity is not None and quantity != '':
        return SetQuantity(validate_quantity(quantity))
    if material:
        return SetMaterial(material_id=material, process_id=process or None)
    if process:
        return SetProcessOnly(process_id=process)
    raise ValidationError("Nothing to update: give a quantity, material or process")


def apply_update(part: Part, update: PartUpdate, catalog: Catalog, customer,
                 home_jurisdiction: str = HOME_JURISDICTION) -> Part:
    """
    Return a copy of `part` with the update applied. The input is not modified.

    Raises:
        ValidationError: If the process or material is unknown or the
            resulting part cannot be priced
    """
    if isinstance(update, SetQuantity):
        pricing = reprice_quantity(part, update.quantity, customer, home_jurisdiction)
        return replace(part, quantity=update.quantity, pricing=pricing)

    if isinstance(update, SetMaterial):
        process_id = update.process_id or part.technology
        if not process_id:
            raise ValidationError(f"Select a process for part {part.serial_number} before its material")
        try:
            rate = catalog.material_rate(process_id, update.material_id)
        except ReferentialGap as e:
            raise ValidationError(e.message)
        updated = replace(part, technology=process_id, material=update.material_id)
        return replace(updated, pricing=price_part(updated, rate, customer, home_jurisdiction))

    if isinstance(update, SetProcessOnly):
        try:
            catalog.get_technology(update.process_id)
        except ReferentialGap as e:
            raise ValidationError(e.message)
        return replace(part, technology=update.process_id, material=None, pricing=PricingBlock.zero())

    raise TypeError(f"Unknown part update: {update!r}")


def apply_bulk(parts: Iterable[Part], selected_ids: Iterable[str], update: PartUpdate,
               catalog: Catalog, customer, home_jurisdiction: str = HOME_JURISDICTION) -> List[Part]:
    """
    Apply one update to every selected part.

    Args:
        parts: Full part list of the document
        selected_ids: Ids of the parts to change
        update: SetQuantity, SetMaterial or SetProcessOnly
        catalog: Catalog for material rates
        customer: Customer deciding tax, or None

    Returns:
        Complete replacement list in the original order. Unselected parts
        are returned as-is and serial numbers are preserved.

    Raises:
        ValidationError: If nothing is selected or any selected part fails;
            in that case no part is changed
    """
    parts = list(parts)
    selected = set(selected_ids)
    if not selected:
        raise ValidationError("No parts selected")

    # Price every selected part before replacing any of them
    updated = {
        part.id: apply_update(part, update, catalog, customer, home_jurisdiction)
        for part in parts if part.id in selected
    }

    missing = selected - set(updated)
    if missing:
        logger.debug(f"[BULK] Ignoring unknown part ids: {sorted(missing)}")

    logger.info(f"[BULK] {type(update).__name__} applied to {len(updated)} part(s)")
    return [updated.get(part.id, part) for part in parts]
