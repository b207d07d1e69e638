"""Router configuration.

RouterConfig is a frozen dataclass — immutable after creation, shared by
every resource compiled with it.
"""

from dataclasses import dataclass

from perch.quoting import PROTECTED_ESCAPES


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(allow_empty_tail=True)
        router = Router(config=config)
    """

    # Patterns
    allow_empty_tail: bool = False  # Let {name}* capture an empty remainder
    max_regex_length: int = 256  # Longest accepted inline {name:regex}

    # Requoting: escapes of these characters stay encoded ("%" always does)
    requote_protected: str = PROTECTED_ESCAPES
