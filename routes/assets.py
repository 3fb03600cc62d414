"""Asset library endpoints: the scripts, pages and covers feedback points at."""
from __future__ import annotations

import logging

from flask import Blueprint, g
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import AssetForm, bind_form, form_changes
from models.asset import Asset
from routes import (
    form_error,
    json_error,
    json_payload,
    json_success,
    load_project,
    require_csrf,
    save_failed,
)

assets_bp = Blueprint("assets", __name__, url_prefix="/api")

ASSET_CLEARABLE_FIELDS = ("file_path", "thumbnail_url")


def _load_asset(asset_id: int, *, edit: bool = False):
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        return None, json_error("Asset not found.", 404)
    _, error = load_project(asset.project_id, edit=edit)
    if error:
        return None, error
    return asset, None


@assets_bp.route("/projects/<int:project_id>/assets", methods=["GET"])
def list_project_assets(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    return json_success(assets=[asset.to_dict() for asset in project.assets])


@assets_bp.route("/assets", methods=["POST"])
def create_asset():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    form = bind_form(AssetForm, payload)
    if not form.validate():
        return form_error(form)
    project, error = load_project(form.project_id.data, edit=True)
    if error:
        return error

    asset = Asset(
        name=form.name.data,
        asset_type=form.asset_type.data,
        file_path=form.file_path.data or None,
        thumbnail_url=form.thumbnail_url.data or None,
        created_by=g.user.id,
    )
    try:
        project.assets.append(asset)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the asset.")

    return json_success(201, "Asset created.", asset=asset.to_dict())


@assets_bp.route("/assets/<int:asset_id>", methods=["GET"])
def get_asset(asset_id: int):
    asset, error = _load_asset(asset_id)
    if error:
        return error
    return json_success(asset=asset.to_dict())


@assets_bp.route("/assets/<int:asset_id>", methods=["PATCH"])
def update_asset(asset_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    asset, error = _load_asset(asset_id, edit=True)
    if error:
        return error

    form = bind_form(AssetForm, payload, obj=asset)
    if not form.validate():
        return form_error(form)

    changes = form_changes(form, payload, ASSET_CLEARABLE_FIELDS)
    changes.pop("project_id", None)
    try:
        for name, value in changes.items():
            if name in ASSET_CLEARABLE_FIELDS:
                value = value or None
            setattr(asset, name, value)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the asset.")

    return json_success(message="Asset updated.", asset=asset.to_dict())


@assets_bp.route("/assets/<int:asset_id>", methods=["DELETE"])
def delete_asset(asset_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    asset, error = _load_asset(asset_id, edit=True)
    if error:
        return error

    try:
        # Feedback raised against the asset stays on the project, unlinked.
        for item in list(asset.feedback_items):
            item.asset = None
        db.session.delete(asset)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the asset.")

    logging.info("Asset %s deleted by user %s", asset_id, g.user.id)
    return json_success(message="Asset deleted.")
