"""Process/material catalog service."""
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional

from fabquote.exceptions import ValidationError
from fabquote.models import Catalog, Material, Technology
from fabquote.services.pricing_service import parse_amount

logger = logging.getLogger(__name__)


def generate_material_id(name: str) -> str:
    """
    Catalog id from a material name.

    Whitespace runs become underscores, other non-alphanumerics are
    dropped, the result is uppercased: 'PLA+ (Matte)' -> 'PLA_MATTE'.
    """
    material_id = re.sub(r'\s+', '_', (name or '').strip())
    material_id = re.sub(r'[^A-Za-z0-9_]', '', material_id)
    return material_id.upper()


def get_catalog(books) -> Catalog:
    return books.catalog.get()


def material_rate(books, technology_id: str, material_id: str) -> Decimal:
    """
    Cost per cc of a material.

    Raises:
        ReferentialGap: If the technology or material is not in the catalog
    """
    return books.catalog.get().material_rate(technology_id, material_id)


def _unique_strings(values) -> list:
    seen = []
    for value in values or []:
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


def _material_from_data(material_id: str, data: Dict[str, Any]) -> Material:
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('Material name is required.')

    cost = parse_amount(data.get('cost_per_cc'), 'Cost per cc')
    if cost < 0:
        raise ValidationError('Cost per cc cannot be negative.')

    return Material(
        id=material_id,
        name=name,
        cost_per_cc=cost,
        properties=_unique_strings(data.get('properties')),
        colors=_unique_strings(data.get('colors')),
    )


def save_technology(books, technology_id: str, data: Dict[str, Any], now=None) -> Technology:
    """Add a technology or rename/redescribe an existing one; materials are kept."""
    technology_id = (technology_id or '').strip()
    if not technology_id:
        raise ValidationError('Technology id is required.')

    catalog = books.catalog.get()
    existing = catalog.technologies.get(technology_id)
    technology = Technology(
        id=technology_id,
        name=(data.get('name') or '').strip() or technology_id,
        description=(data.get('description') or '').strip(),
        materials=existing.materials if existing else {},
    )
    catalog.technologies[technology_id] = technology
    books.catalog.save(catalog, now)
    logger.info(f"[CATALOG] {'Updated' if existing else 'Added'} technology {technology_id}")
    return technology


def add_material(books, technology_id: str, data: Dict[str, Any], now=None) -> Material:
    """
    Add a material to a technology, id derived from its name.

    Args:
        books: Books bundle
        technology_id: Technology the material belongs to
        data: name, cost_per_cc, properties, colors

    Returns:
        The new Material

    Raises:
        ReferentialGap: If the technology does not exist
        ValidationError: If the name is empty or already taken, or the cost is invalid
    """
    catalog = books.catalog.get()
    technology = catalog.get_technology(technology_id)

    material_id = generate_material_id(data.get('name'))
    if not material_id:
        raise ValidationError('Material name must contain letters or digits.')
    if material_id in technology.materials:
        raise ValidationError(f'Material {material_id} already exists for {technology.name}.')

    material = _material_from_data(material_id, data)
    technology.materials[material_id] = material
    books.catalog.save(catalog, now)
    logger.info(f"[CATALOG] Added {technology_id}/{material_id} at {material.cost_per_cc}/cc")
    return material


def update_material(books, technology_id: str, material_id: str, data: Dict[str, Any], now=None) -> Material:
    """
    Replace a material's fields under its existing id.

    Parts already priced keep their rate until they are repriced.
    """
    catalog = books.catalog.get()
    previous = catalog.get_material(technology_id, material_id)
    material = _material_from_data(material_id, data)

    catalog.technologies[technology_id].materials[material_id] = material
    books.catalog.save(catalog, now)
    if material.cost_per_cc != previous.cost_per_cc:
        logger.info(f"[CATALOG] {technology_id}/{material_id}: {previous.cost_per_cc} -> {material.cost_per_cc}/cc")
    return material


def delete_material(books, technology_id: str, material_id: str, now=None) -> Optional[Material]:
    """Remove a material. Documents referencing it keep their priced parts."""
    catalog = books.catalog.get()
    material = catalog.get_material(technology_id, material_id)

    del catalog.technologies[technology_id].materials[material_id]
    books.catalog.save(catalog, now)
    logger.info(f"[CATALOG] Deleted {technology_id}/{material_id}")
    return material
