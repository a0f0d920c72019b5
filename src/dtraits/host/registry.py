"""
In-memory reference host for dynamic traits.

``TraitRegistry`` plays the host contract around the engine: it owns trait storage,
resolves caller roles, runs permission + validation through dtraits.engine, persists
accepted values, and emits update events. Token ownership is supplied by the caller
(``owner_of``); transfer mechanics are out of scope.

Guarantees
- A rejected update leaves stored values unchanged and emits no event.
- Bulk setters validate every token before writing anything.
- The (metadata URI, schema) pair is swapped as one reference, so readers see either
  the old or the new schema, never a mix.
- A re-entrant lock serialises writers; readers do not take it.

Examples:
    >>> from dtraits.core.loader import load_schema
    >>> schema = load_schema({"traits": {"level": {"displayName": "Level",
    ...     "dataType": {"type": "decimal", "bits": 8}}}})
    >>> reg = TraitRegistry(owner_of={1: "alice"}.get, privileged=["admin"], schema=schema)
    >>> _ = reg.set_trait("level", 1, 3, caller="admin")
    >>> reg.get_trait_display("level", 1)
    3
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from dtraits.core.constants import ZERO_WORD
from dtraits.core.errors import OutOfRange, TraitValueUnchanged, Unauthorized
from dtraits.core.grammar import CallerRole, coerce_word, word_to_hex
from dtraits.core.keys import resolve
from dtraits.core.loader import load_schema
from dtraits.core.schema import TraitSchema, TraitSchemaEntry
from dtraits.core.typing import DisplayValue
from dtraits.engine.permissions import DEFAULT_POLICY, PermissionPolicy, check_permission
from dtraits.engine.values import (
    NormalizedValue,
    denormalize,
    is_raw_candidate,
    validate_and_normalize,
)

from .events import (
    TraitEvent,
    TraitMetadataURIUpdated,
    TraitUpdated,
    TraitUpdatedBulkList,
    TraitUpdatedBulkRange,
)

__all__ = ["TraitRecord", "TraitRegistry"]

logger = logging.getLogger(__name__)

TraitRef = str | bytes
Listener = Callable[[TraitEvent], None]


@dataclass(frozen=True)
class TraitRecord:
    """Stored trait value for one token."""

    token_id: int
    trait_key: bytes
    raw_value: bytes


@dataclass(frozen=True)
class _SchemaState:
    uri: str
    schema: TraitSchema | None


class TraitRegistry:
    """
    Reference host implementing the dynamic traits interface.

    Args:
        owner_of: Returns the owner of a token id (None if unminted).
        privileged: Callers allowed to set any trait and the metadata URI.
        schema: Initially loaded schema (optional; literal keys work without one).
        metadata_uri: Location of the document ``schema`` was loaded from.
        policy: Permission policy for trait updates.
        schema_loader: Turns a decoded document into a TraitSchema.
    """

    def __init__(
        self,
        owner_of: Callable[[int], str | None],
        *,
        privileged: Iterable[str] = (),
        schema: TraitSchema | None = None,
        metadata_uri: str = "",
        policy: PermissionPolicy = DEFAULT_POLICY,
        schema_loader: Callable[[Mapping[str, Any]], TraitSchema] = load_schema,
    ) -> None:
        self._owner_of = owner_of
        self._privileged = frozenset(privileged)
        self._policy = policy
        self._schema_loader = schema_loader
        self._state = _SchemaState(uri=metadata_uri, schema=schema)
        self._values: dict[tuple[int, bytes], bytes] = {}
        self._events: list[TraitEvent] = []
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ reads

    @property
    def schema(self) -> TraitSchema | None:
        return self._state.schema

    @property
    def events(self) -> tuple[TraitEvent, ...]:
        return tuple(self._events)

    def resolve_key(self, trait: TraitRef) -> bytes:
        return resolve(self._state.schema, trait)

    def entry_for(self, trait: TraitRef) -> TraitSchemaEntry | None:
        state = self._state
        if state.schema is None:
            return None
        return state.schema.get(resolve(state.schema, trait))

    def role_of(self, caller: str, token_id: int) -> CallerRole:
        if caller in self._privileged:
            return CallerRole.PRIVILEGED
        if self._owner_of(token_id) == caller:
            return CallerRole.TOKEN_OWNER
        return CallerRole.PUBLIC

    def get_trait_value(self, trait_key: TraitRef, token_id: int) -> bytes:
        """Raw stored value; the zero word when never set."""
        return self._values.get((token_id, self.resolve_key(trait_key)), ZERO_WORD)

    def get_trait_values(self, token_id: int, trait_keys: Sequence[TraitRef]) -> list[bytes]:
        """Raw stored values in the order of ``trait_keys``."""
        return [self.get_trait_value(k, token_id) for k in trait_keys]

    def get_trait_display(self, trait_key: TraitRef, token_id: int) -> DisplayValue:
        """Stored value decoded through the current schema (hex when the trait is unknown)."""
        raw = self.get_trait_value(trait_key, token_id)
        entry = self.entry_for(trait_key)
        if entry is None:
            return word_to_hex(raw)
        return denormalize(entry, raw)

    def get_trait_metadata_uri(self) -> str:
        return self._state.uri

    def records(self) -> list[TraitRecord]:
        """Snapshot of every stored value, ordered by token id then trait key."""
        items = sorted(self._values.items())
        return [TraitRecord(token_id=t, trait_key=k, raw_value=v) for (t, k), v in items]

    # ------------------------------------------------------------------ events

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register an event listener; returns a function that removes it.

        Listeners run after the write, in registration order. An exception raised by a
        listener is logged and does not undo the write or skip later listeners.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: TraitEvent) -> None:
        self._events.append(event)
        # Writes are committed before listeners run.
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("trait event listener %r failed on %s", listener, event.name.value)

    # ------------------------------------------------------------------ writes

    def _normalize(
        self,
        schema: TraitSchema | None,
        key: bytes,
        token_id: int,
        value: Any,
        caller: str,
    ) -> NormalizedValue:
        role = self.role_of(caller, token_id)
        entry = schema.get(key) if schema is not None else None
        if entry is not None:
            return validate_and_normalize(entry, value, role, policy=self._policy)
        check_permission(None, role, self._policy)
        if not is_raw_candidate(value):
            raise OutOfRange(
                f"trait {word_to_hex(key)} is not in the schema; only raw 32-byte values are accepted"
            )
        try:
            raw = coerce_word(value)
        except ValueError as exc:
            raise OutOfRange(str(exc)) from exc
        return NormalizedValue(raw, word_to_hex(raw))

    def set_trait(self, trait_key: TraitRef, token_id: int, value: Any, *, caller: str) -> NormalizedValue:
        """
        Validate and store one token's trait value, then emit TraitUpdated.

        Raises:
            Unauthorized: Caller may not update this trait.
            OutOfRange, Overflow, InvalidConstraint: Value rejected by the data type.
            TraitValueUnchanged: Value equals the stored value.
        """
        with self._lock:
            schema = self._state.schema
            key = resolve(schema, trait_key)
            normalized = self._normalize(schema, key, token_id, value, caller)
            if self._values.get((token_id, key), ZERO_WORD) == normalized.raw:
                raise TraitValueUnchanged(
                    f"token {token_id} already has {normalized.raw_hex} for trait {word_to_hex(key)}"
                )
            self._values[(token_id, key)] = normalized.raw
            logger.info(
                "trait %s set for token %d to %s", word_to_hex(key), token_id, normalized.raw_hex
            )
            self._emit(TraitUpdated(trait_key=key, token_id=token_id, value=normalized.raw))
            return normalized

    def _set_many(
        self, trait_key: TraitRef, token_ids: Sequence[int], value: Any, caller: str
    ) -> tuple[bytes, NormalizedValue]:
        schema = self._state.schema
        key = resolve(schema, trait_key)
        normalized: NormalizedValue | None = None
        for token_id in token_ids:
            normalized = self._normalize(schema, key, token_id, value, caller)
        if normalized is None:
            raise OutOfRange("bulk update requires at least one token id")
        for token_id in token_ids:
            self._values[(token_id, key)] = normalized.raw
        logger.info(
            "trait %s set for %d tokens to %s", word_to_hex(key), len(token_ids), normalized.raw_hex
        )
        return key, normalized

    def set_trait_range(
        self,
        trait_key: TraitRef,
        from_token_id: int,
        to_token_id: int,
        value: Any,
        *,
        caller: str,
    ) -> NormalizedValue:
        """
        Store one value for every token in ``from_token_id..to_token_id`` (inclusive)
        and emit a single TraitUpdatedBulkRange.

        Raises:
            OutOfRange: If the range is empty.
        """
        if from_token_id > to_token_id:
            raise OutOfRange(f"empty token range {from_token_id}..{to_token_id}")
        with self._lock:
            ids = range(from_token_id, to_token_id + 1)
            key, normalized = self._set_many(trait_key, ids, value, caller)
            self._emit(TraitUpdatedBulkRange(key, from_token_id, to_token_id))
            return normalized

    def set_trait_list(
        self,
        trait_key: TraitRef,
        token_ids: Iterable[int],
        value: Any,
        *,
        caller: str,
    ) -> NormalizedValue:
        """Store one value for each listed token and emit a single TraitUpdatedBulkList."""
        ids = tuple(token_ids)
        with self._lock:
            key, normalized = self._set_many(trait_key, ids, value, caller)
            self._emit(TraitUpdatedBulkList(key, ids))
            return normalized

    def set_trait_metadata_uri(
        self,
        uri: str,
        document: Mapping[str, Any] | TraitSchema,
        *,
        caller: str,
    ) -> TraitSchema:
        """
        Replace the metadata URI and schema atomically, then emit TraitMetadataURIUpdated.

        The document is fully loaded before anything changes; a load error leaves the
        current URI and schema in place.

        Raises:
            Unauthorized: Caller is not privileged.
            SchemaLoadError: The document is rejected.
        """
        if caller not in self._privileged:
            raise Unauthorized(f"caller {caller!r} may not update the trait metadata URI")
        schema = document if isinstance(document, TraitSchema) else self._schema_loader(document)
        with self._lock:
            self._state = _SchemaState(uri=uri, schema=schema)
            logger.info("trait metadata URI updated to %s (%d traits)", uri, len(schema))
            self._emit(TraitMetadataURIUpdated(uri=uri))
        return schema
