"""Run mode and run statistics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportMode:
    """Immutable run configuration, built once and shared by every component."""

    dry_run: bool = False
    strict: bool = False
    skip_dataset_version: bool = False
    force_pending: bool = False
    import_parsing: bool = True
    import_knowledge: bool = True

    def __post_init__(self) -> None:
        if not (self.import_parsing or self.import_knowledge):
            raise ValueError("At least one of parsing or knowledge tables must be imported")

    @classmethod
    def from_flags(
        cls,
        *,
        only_parsing: bool = False,
        only_knowledge: bool = False,
        dry_run: bool = False,
        strict: bool = False,
        skip_dataset_version: bool = False,
        force_pending: bool = False,
    ) -> ImportMode:
        if only_parsing and only_knowledge:
            raise ValueError("--only-parsing and --only-knowledge are mutually exclusive")
        return cls(
            dry_run=dry_run,
            strict=strict,
            skip_dataset_version=skip_dataset_version,
            force_pending=force_pending,
            import_parsing=not only_knowledge,
            import_knowledge=not only_parsing,
        )

    def as_flags(self) -> dict[str, bool]:
        return asdict(self)


@dataclass(slots=True, kw_only=True)
class ImportStats:
    """Per-entity row counts for one run.

    Counts are taken from the rows a run builds, not from what the store reports,
    so a dry run and a live run over the same package agree.
    """

    ingredients: int = 0
    synonyms: int = 0
    citations: int = 0
    forms: int = 0
    evidence: int = 0
    aliases: int = 0
    normalization_rules: int = 0
    token_aliases: int = 0
    generic_form_tokens: int = 0
    interactions: int = 0
    nutrient_targets: int = 0
    target_profiles: int = 0
    ul_toxicity: int = 0
    dose_response_curves: int = 0
    warnings: int = 0
    issues: int = 0
    extra: dict[str, object] = field(default_factory=dict[str, object])

    def counts(self) -> dict[str, int]:
        values = asdict(self)
        values.pop("extra")
        return values

    def as_json(self, *, error: BaseException | None = None) -> dict[str, object]:
        payload: dict[str, object] = {**self.counts(), **self.extra}
        if error is not None:
            payload["error"] = _describe(error)
        return payload

    def summary_line(self, mode: ImportMode) -> str:
        counts = " ".join(f"{name}={value}" for name, value in self.counts().items())
        return f"done {counts} dry_run={mode.dry_run} strict={mode.strict}"


def _describe(error: BaseException) -> str:
    if isinstance(error, (KeyboardInterrupt, SystemExit)):
        return "interrupted"
    return str(error) or type(error).__name__
