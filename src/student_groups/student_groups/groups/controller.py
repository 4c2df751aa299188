from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..core.constants import (
    FAILURE_STATUS,
    REASON_GENERIC_FAILURE,
    REASON_GROUP_NOT_FOUND,
    REASON_NO_GROUP_FILTERS,
    RUN_FILTERS_SUCCESS_MESSAGE,
)
from ..core.enums import ReconcileStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def failure(reason: str, status_code: int = 400):
    return jsonify({"Status": FAILURE_STATUS, "Reason": reason}), status_code


def register(app: Flask, container: Container) -> None:
    def _payload() -> dict:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    @app.route("/groups", methods=["GET"], endpoint="groups_list")
    def groups_list():
        try:
            groups = container.group_service.list_groups()
        except Exception:
            logger.exception("Listing groups failed")
            return failure(REASON_GENERIC_FAILURE)
        return jsonify([g.to_dict() for g in groups])

    @app.route("/groups", methods=["POST"], endpoint="groups_create")
    def groups_create():
        try:
            group = container.group_service.create_group(_payload())
        except ValidationError as e:
            return failure(str(e))
        except Exception:
            logger.exception("Creating group failed")
            return failure(REASON_GENERIC_FAILURE)
        return jsonify(group.to_dict()), 201

    @app.route("/groups", methods=["PUT"], endpoint="groups_update")
    def groups_update():
        try:
            group = container.group_service.update_group(_payload())
        except NotFoundError:
            return failure(REASON_GROUP_NOT_FOUND)
        except ValidationError as e:
            return failure(str(e))
        except Exception:
            logger.exception("Updating group failed")
            return failure(REASON_GENERIC_FAILURE)
        return jsonify(group.to_dict())

    @app.route("/groups/<group_id>", methods=["DELETE"], endpoint="groups_delete")
    def groups_delete(group_id: str):
        try:
            group = container.group_service.delete_group(group_id)
        except NotFoundError:
            return failure(REASON_GROUP_NOT_FOUND)
        except Exception:
            logger.exception("Deleting group %s failed", group_id)
            return failure(REASON_GENERIC_FAILURE)
        return jsonify(group.to_dict())

    @app.route("/groups/students", methods=["GET"], endpoint="groups_students")
    def groups_students():
        try:
            rows = container.group_service.list_group_students()
        except Exception:
            logger.exception("Listing group students failed")
            return failure(REASON_GENERIC_FAILURE)
        return jsonify([r.to_dict() for r in rows])

    @app.route("/groups/run-filters", methods=["POST"], endpoint="groups_run_filters")
    def groups_run_filters():
        try:
            report = container.reconciler.reconcile_all()
        except Exception:
            logger.exception("Group filter run failed")
            return failure(REASON_GENERIC_FAILURE)

        if report.status == ReconcileStatus.NO_GROUPS:
            return failure(REASON_NO_GROUP_FILTERS)
        return jsonify({"message": RUN_FILTERS_SUCCESS_MESSAGE, **report.to_dict()})
