"""
Application configuration management.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    if Path("./src/data").exists() and Path("./src/data/processed").exists():
        return Path("./src/data")
    return Path("./data")


def parse_goal_overrides(raw: Optional[str]) -> Dict[Tuple[str, str], float]:
    """
    Parse GOAL_OVERRIDES, e.g. "101=130,102:FLV=95".

    Keys are (branch, line); a missing line is stored as "all".
    Malformed entries are skipped.
    """
    overrides = {}
    if not raw:
        return overrides

    for entry in raw.split(","):
        if "=" not in entry:
            continue
        key, value = entry.split("=", 1)
        try:
            target = float(value.strip())
        except ValueError:
            continue
        branch, _, line = key.strip().partition(":")
        if not branch:
            continue
        overrides[(branch.strip(), line.strip() or "all")] = target

    return overrides


def _key_part(value) -> str:
    if value is None or value != value:  # None / NaN
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


@dataclass(frozen=True)
class GoalPolicy:
    """Rate-per-hour goal ("meta"), with optional per branch/line overrides."""
    volume_target: float = 120.0
    visits_target: float = 120.0
    overrides: Dict[Tuple[str, str], float] = field(default_factory=dict)

    def target_for(self, branch_id=None, line=None, mode: str = "volume") -> float:
        branch, line = _key_part(branch_id), _key_part(line)
        for key in ((branch, line), (branch, "all")):
            if key in self.overrides:
                return self.overrides[key]
        return self.visits_target if mode == "visits" else self.volume_target


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Cache settings
    cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "300")))

    # Data source: synthetic | file | supabase
    data_source: str = field(default_factory=lambda: os.getenv("DATA_SOURCE", "synthetic"))
    supabase_url: str = field(default_factory=lambda: os.getenv("SUPABASE_URL", ""))
    supabase_key: str = field(default_factory=lambda: os.getenv("SUPABASE_KEY", ""))
    supabase_table: str = field(default_factory=lambda: os.getenv("SUPABASE_TABLE", "sepprodutividade"))

    # Synthetic generator
    mock_row_count: int = field(default_factory=lambda: int(os.getenv("MOCK_ROW_COUNT", "150")))
    mock_seed: int = field(default_factory=lambda: int(os.getenv("MOCK_SEED", "42")))

    # Business rules
    goal_target: float = field(default_factory=lambda: float(os.getenv("GOAL_TARGET", "120")))
    visit_goal_target: float = field(default_factory=lambda: float(os.getenv("VISIT_GOAL_TARGET", "120")))
    goal_overrides: Dict[Tuple[str, str], float] = field(
        default_factory=lambda: parse_goal_overrides(os.getenv("GOAL_OVERRIDES"))
    )
    min_hours_floor: float = 1.0

    # KPI bands (percent of goal)
    good_band_pct: float = 100.0
    warning_band_pct: float = 80.0

    @property
    def processed_dir(self) -> Path:
        return self.data_dir / "processed"

    @property
    def is_prod(self) -> bool:
        return self.app_env.lower() == "prod"

    @property
    def goal_policy(self) -> GoalPolicy:
        return GoalPolicy(
            volume_target=self.goal_target,
            visits_target=self.visit_goal_target,
            overrides=dict(self.goal_overrides),
        )


# Global config instance
config = AppConfig()


# Table file names
TABLE_FILES = {
    "task_rows": "task_rows",
}

# Metric modes -> rate column used for ranking and goal classification
MODES = ("volume", "visits")

RATE_COLUMNS = {
    "volume": "volume_per_hour",
    "visits": "visits_per_hour",
}

TOTAL_COLUMNS = {
    "volume": "total_volume",
    "visits": "total_visits",
}

STATUS_ABOVE = "ABOVE"
STATUS_BELOW = "BELOW"

UNKNOWN_WORKER = "Unknown"

# Required columns (hard fail if missing)
REQUIRED_COLUMNS = {
    "task_rows": [
        "worker_id",
        "volume_count",
        "visit_count",
        "date_started",
        "time_start",
        "time_end",
    ],
}

# Optional columns (soft warn if missing)
OPTIONAL_COLUMNS = {
    "task_rows": [
        "worker_name",
        "branch_id",
        "line",
        "team",
    ],
}

# Worker aggregate output shape
AGGREGATE_COLUMNS = [
    "worker_id",
    "worker_name",
    "branch_id",
    "line",
    "team",
    "total_volume",
    "total_visits",
    "earliest_start",
    "latest_end",
    "hours_worked",
    "volume_per_hour",
    "visits_per_hour",
    "goal_target",
    "percent_of_goal",
    "status",
]

COLUMN_LABELS = {
    "worker_id": "Worker ID",
    "worker_name": "Worker",
    "branch_id": "Branch",
    "line": "Line",
    "team": "Team",
    "date_started": "Date",
    "total_volume": "Volumes",
    "total_visits": "Visits",
    "volume_count": "Volumes",
    "visit_count": "Visits",
    "earliest_start": "First Start",
    "latest_end": "Last End",
    "time_start": "Start",
    "time_end": "End",
    "hours_worked": "Hours Worked",
    "volume_per_hour": "Vol/Hour",
    "visits_per_hour": "Visits/Hour",
    "goal_target": "Goal",
    "percent_of_goal": "% of Goal",
    "status": "Status",
}

DEFAULT_VISIBLE_COLUMNS = [
    "worker_name",
    "total_volume",
    "total_visits",
    "hours_worked",
    "volume_per_hour",
    "visits_per_hour",
    "goal_target",
    "status",
]

# Formatting constants
FORMAT_HOURS = "{:,.2f}"
FORMAT_PERCENT = "{:.0f}%"
FORMAT_COUNT = "{:,}"
