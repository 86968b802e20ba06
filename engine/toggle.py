"""
Relation Toggle Engine.

Likes and subscriptions are toggle relations: the record's existence is
the state. toggle_relation() deletes an existing relation or creates a
missing one.

Concurrent writers on the same (actor, target) pair are resolved without
surfacing the race:
- create hits the unique constraint -> someone else just added it,
  retry as a delete
- delete finds nothing left -> someone else just removed it,
  retry as a create

Attempts are bounded; CONFLICT is returned only if every attempt loses.
Target existence is not checked here (see services.relation_service).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from db.enums import RELATION_TARGETS, RelationKind, TargetKind
from engine.identifiers import parse_id
from engine.result import EngineError, ErrorKind, as_result
from store.base import Collection, ContentStore, DuplicateRecordError, Filter, Record

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class ToggleState(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass
class ToggleOutcome:
    """State after a toggle plus the created or deleted relation."""

    state: ToggleState
    record: Optional[Record] = None

    def to_dict(self) -> dict[str, Any]:
        return {"state": self.state.value, "record": self.record}


def resolve_target_kind(kind: RelationKind, target_kind: Optional[TargetKind]) -> TargetKind:
    """
    Validate the discriminant pair.

    Subscriptions always target a channel; likes must name one of
    video, comment or tweet.

    Raises:
        EngineError: VALIDATION_FAILURE for an impossible pair.
    """
    try:
        kind = RelationKind(kind)
        allowed = RELATION_TARGETS[kind]
    except ValueError:
        raise EngineError(ErrorKind.VALIDATION_FAILURE, f"Unknown relation kind: {kind}")

    if target_kind is None:
        if len(allowed) == 1:
            return allowed[0]
        raise EngineError(ErrorKind.VALIDATION_FAILURE, f"A {kind.value} needs a target kind")

    try:
        target_kind = TargetKind(target_kind)
    except ValueError:
        raise EngineError(ErrorKind.VALIDATION_FAILURE, f"Unknown target kind: {target_kind}")
    if target_kind not in allowed:
        raise EngineError(
            ErrorKind.VALIDATION_FAILURE,
            f"A {kind.value} cannot target a {target_kind.value}",
        )
    return target_kind


class RelationToggleEngine:
    """Flips like / subscription relations."""

    def __init__(self, store: ContentStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.store = store
        self.max_attempts = max(1, max_attempts)

    @as_result
    def toggle_relation(
        self,
        kind: RelationKind,
        actor_id: Any,
        target_id: Any,
        target_kind: Optional[TargetKind] = None,
    ) -> ToggleOutcome:
        """
        Flip the relation between an actor and a target.

        Args:
            kind: LIKE or SUBSCRIPTION.
            actor_id: User performing the action.
            target_id: Video / comment / tweet id, or channel (User) id.
            target_kind: Required for likes; implied for subscriptions.

        Returns:
            Result wrapping a ToggleOutcome: ADDED with the new relation or
            REMOVED with the deleted one.
        """
        actor = parse_id(actor_id, "actor")
        resolved_kind = resolve_target_kind(kind, target_kind)
        target = parse_id(target_id, resolved_kind.value)

        key = {"actor_id": actor, "target_kind": resolved_kind, "target_id": target}
        lookup = Filter().eq("actor_id", actor).eq("target_kind", resolved_kind).eq("target_id", target)

        for attempt in range(1, self.max_attempts + 1):
            existing = self.store.find_one(Collection.RELATIONS, lookup)

            if existing is not None:
                removed = self.store.delete_one(Collection.RELATIONS, existing["id"])
                if removed is not None:
                    logger.info(
                        f"[Toggle] {resolved_kind.value} {target} <- {actor}: removed")
                    return ToggleOutcome(ToggleState.REMOVED, removed)
                logger.info(
                    f"[Toggle] relation {existing['id']} vanished before delete "
                    f"(attempt {attempt}); retrying as create")

            try:
                created = self.store.create_one(
                    Collection.RELATIONS, {**key, "kind": RelationKind(kind)})
            except DuplicateRecordError:
                logger.info(
                    f"[Toggle] concurrent add on {resolved_kind.value} {target} "
                    f"by {actor} (attempt {attempt}); retrying as delete")
                continue

            logger.info(f"[Toggle] {resolved_kind.value} {target} <- {actor}: added")
            return ToggleOutcome(ToggleState.ADDED, created)

        logger.warning(
            f"[Toggle] gave up on {resolved_kind.value} {target} by {actor} "
            f"after {self.max_attempts} attempts")
        raise EngineError(
            ErrorKind.CONFLICT,
            "Relation changed concurrently too many times; try again",
        )
