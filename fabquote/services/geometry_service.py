"""
Geometry extraction from uploaded 3D model files.

Only STL (binary and ASCII) is understood. Volume is reported in whole cubic
centimetres, rounded up; the bounding box is the mesh extents in millimetres.
"""
import logging
import math
import os
from dataclasses import dataclass
from decimal import Decimal
from io import BytesIO
from typing import Optional

import trimesh

from fabquote.exceptions import UnsupportedFileTypeError, ValidationError
from fabquote.models import BoundingBox

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {'stl'}
MM3_PER_CC = 1000


@dataclass(frozen=True)
class Geometry:
    volume: Decimal
    bounding_box: Optional[BoundingBox]


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or '')[1].lstrip('.').lower()


def parse_geometry(file_bytes: bytes, file_name: str) -> Geometry:
    """
    Extract volume and bounding box from a model file.

    Args:
        file_bytes: Raw file content
        file_name: Original name; the extension selects the parser

    Returns:
        Geometry with volume in cc (ceil) and bounding box in mm

    Raises:
        UnsupportedFileTypeError: If the extension is not supported
        ValidationError: If the file cannot be parsed or has no triangles
    """
    extension = file_extension(file_name)
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(extension or file_name)

    # Any failure inside the mesh library means an unreadable file
    try:
        mesh = trimesh.load_mesh(BytesIO(file_bytes), file_type=extension, process=False)
        face_count = 0 if mesh is None else len(mesh.faces)
        if face_count:
            signed_volume = float(mesh.volume)
            extents = [float(v) for v in mesh.extents]
    except Exception as e:
        logger.warning(f"[GEOMETRY] ⚠ Could not parse {file_name}: {type(e).__name__}: {e}")
        raise ValidationError(f"Could not read {file_name}: {e}")

    if face_count == 0:
        raise ValidationError(f"No vertices found in {file_name}")

    # Signed tetrahedra volume; winding may be inverted
    volume_cc = abs(signed_volume) / MM3_PER_CC
    # Float noise must not push an exact volume up to the next cc
    volume = Decimal(math.ceil(round(volume_cc, 6)))

    x, y, z = (abs(v) for v in extents)
    bounding_box = BoundingBox(
        x=Decimal(str(round(x, 4))),
        y=Decimal(str(round(y, 4))),
        z=Decimal(str(round(z, 4))),
    )

    logger.info(f"[GEOMETRY] {file_name}: {volume} cc, {x:.2f} x {y:.2f} x {z:.2f} mm")
    return Geometry(volume=volume, bounding_box=bounding_box)
