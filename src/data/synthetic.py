"""
Synthetic task rows for demos and local development.

Rows use the upstream store's column names so they go through the same
alias mapping and coercion as live data.
"""
from datetime import date, timedelta
from typing import Optional

import numpy as np
import pandas as pd


WORKERS = [
    "JOAO SILVA", "MARIA SANTOS", "PEDRO OLIVEIRA", "ANA SOUZA",
    "CARLOS LIMA", "FERNANDA COSTA", "LUCAS PEREIRA", "JULIA RODRIGUES",
]
BRANCHES = [101, 102, 464]
LINES = ["MERCEARIA", "PERECIVEIS", "FLV", "ALTO GIRO"]
TEAMS = ["TURNO A", "TURNO B", "NOTURNO"]

WORKER_ID_BASE = 1000


def _fmt_time(decimal_hours: float) -> str:
    total_seconds = int(round(decimal_hours * 3600)) % (24 * 3600)
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def generate_task_rows(n_rows: int = 150,
                       seed: Optional[int] = 42,
                       reference_date: Optional[date] = None,
                       days: int = 7) -> pd.DataFrame:
    """
    Generate n_rows task rows spread over the `days` days ending at
    reference_date (default today).

    Each worker keeps a fixed branch, line and team. NOTURNO workers start
    late in the evening, so some of their tasks cross midnight.
    """
    rng = np.random.default_rng(seed)
    reference_date = reference_date or date.today()

    profiles = {}
    for i, name in enumerate(WORKERS):
        profiles[name] = {
            "worker_id": WORKER_ID_BASE + i,
            "branch": BRANCHES[i % len(BRANCHES)],
            "line": LINES[i % len(LINES)],
            "team": TEAMS[i % len(TEAMS)],
        }

    rows = []
    for i in range(n_rows):
        name = WORKERS[int(rng.integers(len(WORKERS)))]
        profile = profiles[name]
        day = reference_date - timedelta(days=int(rng.integers(days)))

        if profile["team"] == "NOTURNO":
            start = 21 + rng.uniform(0, 3)
        else:
            start = 6 + rng.uniform(0, 9)
        duration = rng.uniform(0.5, 2.5)

        rows.append({
            "id": i,
            "NROEMPRESA": profile["branch"],
            "CODPRODUTIVO": profile["worker_id"],
            "PRODUTIVO": name,
            "LINHA_SEPARACAO": profile["line"],
            "EQUIPE": profile["team"],
            # the live store returns volumes as text
            "QTDVOLUME": str(int(rng.integers(50, 250))),
            "QTD_VISITAS": int(rng.integers(10, 60)),
            "DTAINICIO": day.isoformat(),
            "HORAINICIO": _fmt_time(start),
            "HORAFIM": _fmt_time(start + duration),
        })

    return pd.DataFrame(rows)
