from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..common.validators import require_int, require_non_empty
from ..core.constants import MAX_NUMBER_OF_WEEKS, REASON_GROUP_NOT_FOUND, ROLL_STATES_SEPARATOR
from ..core.enums import RollState
from ..core.exceptions import ConfigurationError, NotFoundError, ValidationError
from ..filters.parser import join_roll_states, parse_comparator, parse_roll_states
from .model import Group, GroupInput, GroupStudentView
from .repository import GroupRepository, GroupStudentRepository

logger = logging.getLogger(__name__)

_KNOWN_ROLL_STATES = {s.value for s in RollState}


class GroupService:
    """Staff-facing management of group filters and their memberships."""

    def __init__(self, groups: GroupRepository, memberships: GroupStudentRepository):
        self._groups = groups
        self._memberships = memberships

    def list_groups(self) -> Sequence[Group]:
        return list(self._groups.list_all())

    def create_group(self, payload: Mapping[str, Any]) -> Group:
        data = self.parse_input(payload)
        group_id = self._groups.create(data)
        logger.info("Created group %s (%r)", group_id, data.name)
        return self._require(group_id)

    def update_group(self, payload: Mapping[str, Any]) -> Group:
        group_id = self._parse_id(payload.get("id"))
        self._require(group_id)

        data = self.parse_input(payload)
        if not self._groups.update(group_id, data):
            raise NotFoundError(REASON_GROUP_NOT_FOUND)
        logger.info("Updated group %s", group_id)
        return self._require(group_id)

    def delete_group(self, group_id: Any) -> Group:
        group = self._require(self._parse_id(group_id))
        if not self._groups.delete(group.group_id):
            raise NotFoundError(REASON_GROUP_NOT_FOUND)
        logger.info("Deleted group %s", group.group_id)
        return group

    def list_group_students(self) -> Sequence[GroupStudentView]:
        return list(self._memberships.list_with_students())

    @staticmethod
    def parse_input(payload: Mapping[str, Any]) -> GroupInput:
        name = require_non_empty(payload.get("name"), "name")
        number_of_weeks = require_int(
            payload.get("number_of_weeks"), "number_of_weeks", min_value=1, max_value=MAX_NUMBER_OF_WEEKS
        )
        incidents = require_int(payload.get("incidents"), "incidents", min_value=0)

        try:
            ltmt = parse_comparator(payload.get("ltmt")).value
        except ConfigurationError:
            raise ValidationError("ltmt must be one of <, <=, >, >=, =") from None

        raw_states = payload.get("roll_states")
        if isinstance(raw_states, (list, tuple)):
            raw_states = join_roll_states(raw_states)
        if raw_states is not None and not isinstance(raw_states, str):
            raise ValidationError("roll_states must be a comma separated string or a list")

        roll_states = join_roll_states(s.lower() for s in (raw_states or "").split(ROLL_STATES_SEPARATOR))
        states = parse_roll_states(roll_states)
        if not states:
            raise ValidationError("roll_states must contain at least one state")
        unknown = sorted(states - _KNOWN_ROLL_STATES)
        if unknown:
            raise ValidationError(f"Unknown roll state(s): {', '.join(unknown)}")

        return GroupInput(
            name=name,
            number_of_weeks=number_of_weeks,
            roll_states=roll_states,
            incidents=incidents,
            ltmt=ltmt,
        )

    @staticmethod
    def _parse_id(value: Any) -> int:
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            raise NotFoundError(REASON_GROUP_NOT_FOUND)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise NotFoundError(REASON_GROUP_NOT_FOUND) from None

    def _require(self, group_id: int) -> Group:
        group = self._groups.get_by_id(group_id)
        if group is None:
            raise NotFoundError(REASON_GROUP_NOT_FOUND)
        return group
