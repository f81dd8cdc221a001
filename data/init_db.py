"""Build a local DuckDB database shaped like the pilot program schema.

    python data/init_db.py data/pilot.duckdb
    pilot-reports run examples/growth_by_placement.yaml --db data/pilot.duckdb
"""

import random
import sys
import uuid
from datetime import date, datetime, timedelta

import duckdb

from pilotreports.catalog.builtin import DEFAULT_CATALOG, GROWTH_STAGES
from pilotreports.models.catalog import FieldType

SQL_TYPES = {
    FieldType.TEXT: "VARCHAR",
    FieldType.ENUM: "VARCHAR",
    FieldType.UUID: "VARCHAR",
    FieldType.JSON: "VARCHAR",
    FieldType.NUMERIC: "DOUBLE",
    FieldType.INTEGER: "INTEGER",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.DATE: "DATE",
    FieldType.TIMESTAMP: "TIMESTAMP",
}

PROGRAMS = [("Spring Trial", "control"), ("Summer Trial", "experimental")]
SITES_PER_PROGRAM = 3
SUBMISSIONS_PER_SITE = 6
PETRIS_PER_SUBMISSION = 5
PLACEMENTS = ["P1", "P2", "P3", "P4", "P5"]
WEATHER = ["Clear", "Cloudy", "Rain"]


def _id() -> str:
    return str(uuid.UUID(int=random.getrandbits(128), version=4))


def _insert(conn: duckdb.DuckDBPyConnection, table: str, rows: list[dict]) -> None:
    if not rows:
        return
    columns = list(rows[0])
    conn.executemany(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
        [list(row.values()) for row in rows],
    )


def init_database(db_path: str = "data/pilot.duckdb") -> None:
    """Create the pilot tables and fill them with reproducible demo rows."""
    random.seed(42)
    conn = duckdb.connect(db_path)

    for source in DEFAULT_CATALOG.data_sources:
        columns = [f"{f.name} {SQL_TYPES[f.type]}" for f in source.fields]
        if source.id == "submissions":
            columns.append("global_submission_id INTEGER")
        conn.execute(f"CREATE OR REPLACE TABLE {source.table} ({', '.join(columns)})")

    programs, sites, submissions, petris = [], [], [], []
    global_id = 1100001

    for p, (name, phase) in enumerate(PROGRAMS):
        start = date(2025, 3, 1) + timedelta(days=90 * p)
        program = {
            "program_id": _id(),
            "name": name,
            "phase_type": phase,
            "start_date": start,
            "end_date": start + timedelta(days=60),
        }
        programs.append(program)

        for s in range(SITES_PER_PROGRAM):
            site = {
                "site_id": _id(),
                "program_id": program["program_id"],
                "name": f"{name.split()[0]} Site {s + 1}",
                "site_code": f"S{p + 1}{s + 1}",
            }
            sites.append(site)

            for day in range(SUBMISSIONS_PER_SITE):
                created = datetime.combine(start, datetime.min.time()) + timedelta(days=day * 7, hours=9)
                submission = {
                    "submission_id": _id(),
                    "site_id": site["site_id"],
                    "program_id": program["program_id"],
                    "temperature": round(random.uniform(55, 85), 1),
                    "humidity": round(random.uniform(30, 90), 1),
                    "weather": random.choice(WEATHER),
                    "created_at": created,
                    "global_submission_id": global_id,
                }
                global_id += 1
                submissions.append(submission)

                for n in range(PETRIS_PER_SUBMISSION):
                    growth = max(0.0, random.gauss(20 + day * 8, 10))
                    petris.append(
                        {
                            "observation_id": _id(),
                            "submission_id": submission["submission_id"],
                            "site_id": site["site_id"],
                            "program_id": program["program_id"],
                            "petri_code": f"{site['site_code']}-{PLACEMENTS[n]}",
                            "placement": PLACEMENTS[n],
                            "fungicide_used": random.choice(["Yes", "No"]),
                            "petri_growth_stage": GROWTH_STAGES[min(int(growth // 12), len(GROWTH_STAGES) - 1)],
                            "growth_index": round(growth, 2),
                            "growth_progression": round(random.uniform(0, 3), 2),
                            "todays_day_of_phase": day * 7,
                            "created_at": created,
                        }
                    )

    _insert(conn, "pilot_programs", programs)
    _insert(conn, "sites", sites)
    _insert(conn, "submissions", submissions)
    _insert(conn, "petri_observations_partitioned", petris)

    print(f"Database initialized at {db_path}")
    print(f"  - {len(programs)} programs, {len(sites)} sites")
    print(f"  - {len(submissions)} submissions, {len(petris)} petri observations")

    conn.close()


if __name__ == "__main__":
    init_database(*sys.argv[1:2])
