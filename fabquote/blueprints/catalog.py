"""Process/material catalog endpoints."""
from flask import Blueprint, request

from fabquote.books import get_books
from fabquote.services import catalog_service
from fabquote.utils.http import json_body, ok

catalog_bp = Blueprint('catalog', __name__, url_prefix='/catalog')


@catalog_bp.route('', methods=['GET'])
def get_catalog():
    return ok(catalog_service.get_catalog(get_books()).to_dict())


@catalog_bp.route('/material-id', methods=['GET'])
def material_id():
    """Preview the id a material name would get (?name=PLA Plus)."""
    return ok({'material_id': catalog_service.generate_material_id(request.args.get('name', ''))})


@catalog_bp.route('/technologies/<technology_id>', methods=['PUT'])
def save_technology(technology_id):
    technology = catalog_service.save_technology(get_books(), technology_id, json_body())
    return ok(technology.to_dict())


@catalog_bp.route('/technologies/<technology_id>/materials', methods=['POST'])
def add_material(technology_id):
    material = catalog_service.add_material(get_books(), technology_id, json_body())
    return ok(dict(material.to_dict(), id=material.id), status_code=201)


@catalog_bp.route('/technologies/<technology_id>/materials/<material_id>', methods=['PUT'])
def update_material(technology_id, material_id):
    material = catalog_service.update_material(get_books(), technology_id, material_id, json_body())
    return ok(dict(material.to_dict(), id=material.id))


@catalog_bp.route('/technologies/<technology_id>/materials/<material_id>', methods=['DELETE'])
def delete_material(technology_id, material_id):
    catalog_service.delete_material(get_books(), technology_id, material_id)
    return ok()
