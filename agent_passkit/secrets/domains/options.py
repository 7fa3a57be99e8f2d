"""Store configuration and the per-invocation options it is layered onto.

Options holds every behavioral switch as an Optional value: ``None`` means
"not set", anything else was set explicitly (usually from a command-line
flag) and outranks configuration defaults.
"""
import logging
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Receives a recipient that failed trust checks, returns True to accept it
ImportFunc = Callable[[str], bool]


def IMPORT_DISABLED(recipient: str) -> bool:
    """Import handler that never imports anything."""
    return False


@dataclass(frozen=True)
class StoreConfig:
    """Persisted store configuration, loaded once per process."""
    ask_for_more: bool = False
    auto_clip: bool = True
    auto_import: bool = True
    auto_sync: bool = True
    clip_timeout: timedelta = timedelta(seconds=45)
    concurrency: int = 1
    edit_recipients: bool = False
    export_keys: bool = True
    no_confirm: bool = False
    no_pager: bool = False
    notifications: bool = True
    safe_content: bool = False
    use_symbols: bool = False


@dataclass(frozen=True)
class Options:
    """Behavioral switches for a single invocation."""
    ask_for_more: Optional[bool] = None
    auto_clip: Optional[bool] = None
    auto_sync: Optional[bool] = None
    clip_timeout: Optional[timedelta] = None
    concurrency: Optional[int] = None
    edit_recipients: Optional[bool] = None
    export_keys: Optional[bool] = None
    no_confirm: Optional[bool] = None
    no_pager: Optional[bool] = None
    notifications: Optional[bool] = None
    safe_content: Optional[bool] = None
    use_symbols: Optional[bool] = None
    import_func: Optional[ImportFunc] = None

    # Whether stdout is attached to a terminal
    is_terminal: bool = True

    @property
    def import_disabled(self) -> bool:
        return self.import_func is IMPORT_DISABLED


# Options filled from StoreConfig only while still unset
LAYERED_OPTIONS = (
    "ask_for_more",
    "auto_clip",
    "clip_timeout",
    "concurrency",
    "edit_recipients",
    "export_keys",
    "no_confirm",
    "no_pager",
    "notifications",
    "safe_content",
    "use_symbols",
    "auto_sync",
)


def with_defaults(config: StoreConfig, options: Options) -> Options:
    """
    Layer a store configuration onto invocation options.

    Args:
        config: Store configuration
        options: Options set so far (e.g. from command-line flags)

    Returns:
        New Options value; the input is left untouched

    Behavior:
        - Options already set are kept, unset ones are taken from config
        - auto_import=False disables recipient import regardless of prior
          value; auto_import=True never re-enables it
        - auto_clip is always forced off when stdout is not a terminal
    """
    updates = {}
    for name in LAYERED_OPTIONS:
        if getattr(options, name) is None:
            updates[name] = getattr(config, name)

    if not config.auto_import:
        updates["import_func"] = IMPORT_DISABLED

    if not options.is_terminal:
        if options.auto_clip:
            logger.debug("stdout is not a terminal, disabling auto clip")
        updates["auto_clip"] = False

    return replace(options, **updates)


def describe(options: Options) -> dict:
    """Return the options as a plain dict, suitable for display."""
    result = {}
    for f in fields(options):
        value = getattr(options, f.name)
        if f.name == "import_func":
            if value is None:
                value = "default"
            elif options.import_disabled:
                value = "disabled"
            else:
                value = "custom"
        elif isinstance(value, timedelta):
            value = f"{int(value.total_seconds())}s"
        result[f.name] = value
    return result
