"""Binder configuration.

Frozen dataclasses: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ConversionPolicy:
    """Textual parsing rules the value converter delegates to.

    The default boolean literals match Go's ``strconv.ParseBool`` set.
    Swap them for a friendlier set if clients send ``yes``/``on``::

        policy = ConversionPolicy(
            true_literals=frozenset({"true", "1", "yes", "on"}),
            false_literals=frozenset({"false", "0", "no", "off"}),
        )
    """

    true_literals: frozenset[str] = frozenset({"1", "t", "T", "TRUE", "true", "True"})
    false_literals: frozenset[str] = frozenset({"0", "f", "F", "FALSE", "false", "False"})
    strip_strings: bool = False

    def parse_bool(self, raw: str) -> bool:
        """Return the boolean for *raw*, raising ``ValueError`` if unknown."""
        if raw in self.true_literals:
            return True
        if raw in self.false_literals:
            return False
        msg = f"invalid boolean literal {raw!r}"
        raise ValueError(msg)


DEFAULT_POLICY = ConversionPolicy()


@dataclass(frozen=True, slots=True)
class BinderConfig:
    """Parser configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = BinderConfig(multipart_limit=8)
    """

    # Multipart: megabytes held in memory per uploaded file (limit << 20 bytes)
    multipart_limit: int = 32
    upload_dir: str | None = None  # Spill directory for large parts (system temp if None)

    # Text bodies
    encoding: str = "utf-8"

    # Scalar conversion
    policy: ConversionPolicy = field(default_factory=ConversionPolicy)
