"""Process/material catalog models."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from fabquote.exceptions import ReferentialGap
from fabquote.utils.serialization import to_decimal


@dataclass
class Material:
    """Material available for a technology, priced per cubic centimetre."""

    id: str
    name: str
    cost_per_cc: Decimal = Decimal('0')
    properties: List[str] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'name': self.name,
            'cost_per_cc': self.cost_per_cc,
            'properties': list(self.properties),
            'colors': list(self.colors),
        }

    @classmethod
    def from_dict(cls, material_id, data):
        return cls(
            id=material_id,
            name=data.get('name', material_id),
            cost_per_cc=to_decimal(data.get('cost_per_cc')),
            properties=list(data.get('properties') or []),
            colors=list(data.get('colors') or []),
        )


@dataclass
class Technology:
    """Manufacturing process (FDM, SLA, SLS, ...)."""

    id: str
    name: str
    description: str = ''
    materials: Dict[str, Material] = field(default_factory=dict)

    def to_dict(self):
        return {
            'name': self.name,
            'description': self.description,
            'materials': {mid: m.to_dict() for mid, m in self.materials.items()},
        }

    @classmethod
    def from_dict(cls, tech_id, data):
        return cls(
            id=tech_id,
            name=data.get('name', tech_id),
            description=data.get('description', ''),
            materials={
                mid: Material.from_dict(mid, mdata)
                for mid, mdata in (data.get('materials') or {}).items()
            },
        )


@dataclass
class Catalog:
    """Technologies keyed by id, each with its materials."""

    technologies: Dict[str, Technology] = field(default_factory=dict)
    currency: str = 'INR'
    last_updated: Optional[str] = None

    def get_technology(self, tech_id: str) -> Technology:
        technology = self.technologies.get(tech_id)
        if technology is None:
            raise ReferentialGap(f'Technology {tech_id} not found in catalog', 'technology', tech_id)
        return technology

    def get_material(self, tech_id: str, material_id: str) -> Material:
        technology = self.get_technology(tech_id)
        material = technology.materials.get(material_id)
        if material is None:
            raise ReferentialGap(
                f'Material {material_id} not available for {technology.name}',
                'material', material_id
            )
        return material

    def material_rate(self, tech_id: str, material_id: str) -> Decimal:
        return self.get_material(tech_id, material_id).cost_per_cc

    def to_dict(self):
        return {
            'technologies': {tid: t.to_dict() for tid, t in self.technologies.items()},
            'currency': self.currency,
            'last_updated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            technologies={
                tid: Technology.from_dict(tid, tdata)
                for tid, tdata in (data.get('technologies') or {}).items()
            },
            currency=data.get('currency', 'INR'),
            last_updated=data.get('last_updated'),
        )
