"""Run configuration and YAML loading."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from structflow.errors import ConfigurationError

PathLike = Union[str, Path]


class RunMode(str, Enum):
    """Job kinds a run can dispatch."""

    PREDICT = "predict"
    ALIGN = "align"


def parse_mode(value: Any) -> RunMode:
    """Convert a mode selector into a ``RunMode``."""
    try:
        return RunMode(value)
    except ValueError:
        raise ConfigurationError(
            f"mode must be set to 'predict' or 'align', got {value!r}"
        ) from None


@dataclass(frozen=True)
class AlphaFoldConfig:
    """Constants passed to ``run_alphafold.py`` for every prediction."""

    alphafold_script: str = "/opt/alphafold/run_alphafold.py"
    bind_mounts: tuple[str, ...] = ("/arc/project", "/scratch", "/cvmfs")
    db_preset: str = "full_dbs"
    model_preset: str = "monomer"
    bfd_database: str = (
        "bfd/bfd_metaclust_clu_complete_id30_c90_final_seq.sorted_opt"
    )
    mgnify_database: str = "mgnify/mgy_clusters_2022_05.fa"
    template_mmcif_dir: str = "pdb_mmcif/mmcif_files"
    obsolete_pdbs: str = "pdb_mmcif/obsolete.dat"
    pdb70_database: str = "pdb70/pdb70"
    uniref30_database: str = "uniref30/UniRef30_2021_03"
    uniref90_database: str = "uniref90/uniref90.fasta"
    max_template_date: str = "2023-12-31"
    use_gpu_relax: bool = True


@dataclass
class RunConfig:
    """Everything a run needs, resolved once and passed explicitly.

    ``predict`` mode reads ``input_dir``, ``scratch_dir``, ``sif_path``
    and ``db_dir``; ``align`` mode reads the equal-length lists
    ``input_pdbs`` and ``alignment_dirs``.
    """

    mode: RunMode
    input_dir: Optional[Path] = None
    scratch_dir: Optional[Path] = None
    sif_path: Optional[Path] = None
    db_dir: Optional[Path] = None
    out_dir: Path = Path("out")
    input_pdbs: List[Path] = field(default_factory=list)
    alignment_dirs: List[Path] = field(default_factory=list)
    extension: str = ".pdb"
    work_dir: Path = Path(".")
    workers: Optional[int] = None
    alphafold: AlphaFoldConfig = field(default_factory=AlphaFoldConfig)

    def __post_init__(self) -> None:
        self.mode = parse_mode(self.mode)
        for name in ("input_dir", "scratch_dir", "sif_path", "db_dir"):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, Path(value))
        self.out_dir = Path(self.out_dir)
        self.work_dir = Path(self.work_dir)
        self.input_pdbs = [Path(p) for p in self.input_pdbs]
        self.alignment_dirs = [Path(p) for p in self.alignment_dirs]

    def validate(self) -> None:
        """Check that the fields required by ``mode`` are present."""
        if self.workers is not None and (
            isinstance(self.workers, bool)
            or not isinstance(self.workers, int)
            or self.workers < 1
        ):
            raise ConfigurationError(
                f"workers must be a positive integer, got {self.workers!r}"
            )
        if self.mode == RunMode.PREDICT:
            missing = [
                name
                for name in ("input_dir", "scratch_dir", "sif_path", "db_dir")
                if getattr(self, name) is None
            ]
            if missing:
                raise ConfigurationError(
                    "predict mode requires: " + ", ".join(missing)
                )
        elif self.mode == RunMode.ALIGN:
            if not self.input_pdbs:
                raise ConfigurationError(
                    "align mode requires at least one input_pdbs entry"
                )


_KNOWN_KEYS = frozenset(f.name for f in dataclasses.fields(RunConfig))


def _ensure_resolvers() -> None:
    """Register custom OmegaConf resolvers (idempotent)."""
    from omegaconf import OmegaConf

    if not OmegaConf.has_resolver("env"):
        OmegaConf.register_new_resolver(
            "env",
            lambda key, default="": os.environ.get(key, default),
        )


def _as_path_list(value: Any, key: str) -> List[Path]:
    if value is None:
        return []
    if isinstance(value, (str, Path)):
        raise ConfigurationError(f"'{key}' must be a list of paths")
    if not isinstance(value, list):
        raise ConfigurationError(
            f"'{key}' must be a list, got {type(value).__name__}"
        )
    return [Path(str(item)) for item in value]


def run_config_from_dict(data: Dict[str, Any]) -> RunConfig:
    """Build and validate a ``RunConfig`` from plain data.

    Keys that are not ``RunConfig`` fields are user-defined variables
    (useful as ``${...}`` interpolation sources); they must be valid
    identifiers with scalar values and are otherwise ignored.
    """
    if "mode" not in data:
        raise ConfigurationError("Configuration must specify 'mode'")

    values = {}
    for key, value in data.items():
        if key in _KNOWN_KEYS:
            values[key] = value
            continue
        if not str(key).isidentifier():
            raise ConfigurationError(
                f"Invalid variable name '{key}'. User-defined keys must "
                "be valid Python identifiers."
            )
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ConfigurationError(
                f"Unknown configuration key '{key}': user-defined variables "
                f"must have a scalar value, got {type(value).__name__}"
            )

    values["input_pdbs"] = _as_path_list(data.get("input_pdbs"), "input_pdbs")
    values["alignment_dirs"] = _as_path_list(
        data.get("alignment_dirs"), "alignment_dirs"
    )

    alphafold = values.pop("alphafold", None) or {}
    if not isinstance(alphafold, dict):
        raise ConfigurationError("'alphafold' must be a mapping")
    if "bind_mounts" in alphafold:
        alphafold["bind_mounts"] = tuple(alphafold["bind_mounts"])
    try:
        values["alphafold"] = AlphaFoldConfig(**alphafold)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid 'alphafold' section: {exc}") from exc

    try:
        config = RunConfig(**values)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    config.validate()
    return config


def load_run_config(
    path: PathLike, overrides: Optional[List[str]] = None
) -> RunConfig:
    """Load a run configuration from a YAML file.

    Parameters
    ----------
    path : str or Path
        YAML file holding the configuration mapping.
    overrides : list of str, optional
        Dotlist-style overrides (e.g. ``["mode=align", "workers=4"]``),
        merged before variable resolution.
    """
    from omegaconf import DictConfig, OmegaConf
    from omegaconf.errors import OmegaConfBaseException

    _ensure_resolvers()

    try:
        cfg = OmegaConf.load(Path(path))
    except (OmegaConfBaseException, OSError) as exc:
        raise ConfigurationError(
            f"Could not load configuration {path}: {exc}"
        ) from exc

    if not isinstance(cfg, DictConfig):
        raise ConfigurationError(
            "Configuration YAML must be a mapping, "
            f"got {type(cfg).__name__}"
        )

    if overrides:
        try:
            cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(overrides))
        except (OmegaConfBaseException, ValueError) as exc:
            raise ConfigurationError(f"Invalid override: {exc}") from exc

    try:
        data = OmegaConf.to_container(cfg, resolve=True)
    except OmegaConfBaseException as exc:
        raise ConfigurationError(
            f"Variable resolution failed: {exc}"
        ) from exc

    return run_config_from_dict(data)
