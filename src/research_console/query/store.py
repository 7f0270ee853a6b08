"""Query configuration store with JSON file persistence."""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from .models import QueryConfiguration, QueryOptions, unique_ids

logger = logging.getLogger(__name__)

STORAGE_KEY = "query-storage"
STORAGE_VERSION = 0

Listener = Callable[[QueryConfiguration], None]


def get_default_storage_path() -> Path:
    """Get the storage file path from the configured storage directory."""
    from ..config import settings

    return settings.storage.get_directory() / f"{STORAGE_KEY}.json"


def _toggle(ids: tuple[str, ...], item: str) -> tuple[str, ...]:
    if item in ids:
        return tuple(i for i in ids if i != item)
    return (*ids, item)


def _restore_state(raw: Any) -> QueryConfiguration:
    """Rebuild a configuration from stored data, defaulting each bad field."""
    defaults = QueryConfiguration()
    if not isinstance(raw, Mapping):
        return defaults

    fields: dict[str, Any] = {}
    for name in ("query", "sources", "llms"):
        if name not in raw:
            continue
        try:
            fields[name] = getattr(QueryConfiguration.model_validate({name: raw[name]}), name)
        except ValidationError:
            logger.warning(f"Ignoring invalid stored value for '{name}'")

    stored_options = raw.get("options")
    if isinstance(stored_options, Mapping):
        option_fields: dict[str, Any] = {}
        for name, field in QueryOptions.model_fields.items():
            key = field.alias or name
            if key not in stored_options:
                continue
            try:
                option_fields[name] = getattr(QueryOptions.model_validate({key: stored_options[key]}), name)
            except ValidationError:
                logger.warning(f"Ignoring invalid stored option '{key}'")
        fields["options"] = QueryOptions(**option_fields)

    return defaults.model_copy(update=fields)


class QueryStore:
    """Owns the user's query configuration and persists it on every change.

    The current state is an immutable ``QueryConfiguration``; it changes only
    through the operations below.
    """

    def __init__(self, path: Path | str | None = None, autoload: bool = True):
        """Initialize the store.

        Args:
            path: JSON file to persist to. Defaults to query-storage.json in the
                configured storage directory.
            autoload: Restore the previously saved state immediately
        """
        self.path = Path(path).expanduser() if path else get_default_storage_path()
        self._state = QueryConfiguration()
        self._listeners: list[Listener] = []
        if autoload:
            self.load()

    # --- Accessors ---

    @property
    def state(self) -> QueryConfiguration:
        return self._state

    @property
    def query(self) -> str:
        return self._state.query

    @property
    def sources(self) -> tuple[str, ...]:
        return self._state.sources

    @property
    def llms(self) -> tuple[str, ...]:
        return self._state.llms

    @property
    def options(self) -> QueryOptions:
        return self._state.options

    # --- Operations ---

    def set_query(self, query: str) -> None:
        self._commit(query=query)

    def toggle_source(self, source: str) -> None:
        """Remove the source if selected, otherwise append it."""
        self._commit(sources=_toggle(self._state.sources, source))

    def toggle_llm(self, llm: str) -> None:
        """Remove the model if selected, otherwise append it."""
        self._commit(llms=_toggle(self._state.llms, llm))

    def set_sources(self, sources: Iterable[str]) -> None:
        self._commit(sources=unique_ids(sources))

    def set_llms(self, llms: Iterable[str]) -> None:
        self._commit(llms=unique_ids(llms))

    def set_options(self, partial: Mapping[str, Any] | None = None, **changes: Any) -> None:
        """Shallow-merge option changes into the current options.

        Keys may be given as field names (``max_results``) or in their stored
        camelCase form (``maxResults``). Unchanged options are kept.

        Raises:
            ValueError: If a key is unknown or a value is invalid
        """
        merged = self._state.options.model_dump(by_alias=True)
        aliases = {name: field.alias or name for name, field in QueryOptions.model_fields.items()}
        for key, value in {**(partial or {}), **changes}.items():
            alias = aliases.get(key, key)
            if alias not in merged:
                raise ValueError(f"Unknown query option: {key}")
            merged[alias] = value
        self._commit(options=QueryOptions.model_validate(merged))

    def reset(self) -> None:
        """Restore the default configuration."""
        self._state = QueryConfiguration()
        self._changed()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with the new state after each change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Persistence ---

    def load(self) -> QueryConfiguration:
        """Restore state from disk, falling back to defaults for anything unusable."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No stored query configuration at {self.path}")
            return self._state
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read stored query configuration: {e}")
            return self._state

        try:
            envelope = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as e:
            logger.warning(f"Stored query configuration is not valid JSON: {e}")
            envelope = {}

        raw_state = envelope.get("state") if isinstance(envelope, dict) else None
        self._state = _restore_state(raw_state)
        logger.debug(f"Restored query configuration from {self.path}")
        return self._state

    def save(self) -> None:
        """Write the full state to disk. Failures are logged, not raised."""
        envelope = {
            "state": self._state.model_dump(mode="json", by_alias=True),
            "version": STORAGE_VERSION,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save query configuration to {self.path}: {e}")

    def _commit(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        self._changed()

    def _changed(self) -> None:
        self.save()
        for listener in list(self._listeners):
            listener(self._state)
