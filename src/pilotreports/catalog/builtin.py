"""Built-in data sources for the pilot program schema.

hand maintained to match the database. if a migration adds a column the
resolver will still pick it up through live introspection, this list is
what we fall back to when that isn't available.
"""

from pilotreports.models.catalog import Catalog, DataSource, FieldType, SourceField

GROWTH_STAGES = [
    "None",
    "Trace",
    "Very Low",
    "Low",
    "Moderate",
    "Moderately High",
    "High",
    "Very High",
    "Hazardous",
    "TNTC Overrun",
]
TREND_VALUES = ["Improving", "Stable", "Declining", "Unknown"]


def _f(
    name: str, type_: FieldType, display_name: str, enum_values: list[str] | None = None
) -> SourceField:
    return SourceField(name=name, type=type_, display_name=display_name, enum_values=enum_values)


T, E, N, INT, B, D, TS, U = (
    FieldType.TEXT,
    FieldType.ENUM,
    FieldType.NUMERIC,
    FieldType.INTEGER,
    FieldType.BOOLEAN,
    FieldType.DATE,
    FieldType.TIMESTAMP,
    FieldType.UUID,
)

PETRI_OBSERVATIONS = DataSource(
    id="petri_observations",
    name="Petri Observations",
    description="Petri dish growth observations and measurements",
    table="petri_observations_partitioned",
    is_partitioned=True,
    partition_keys=["program_id", "site_id", "submission_id"],
    fields=[
        _f("observation_id", U, "Observation ID"),
        _f("submission_id", U, "Submission ID"),
        _f("program_id", U, "Program ID"),
        _f("site_id", U, "Site ID"),
        _f("petri_code", T, "Petri Code"),
        _f("fungicide_used", E, "Fungicide Used", ["Yes", "No"]),
        _f("petri_growth_stage", E, "Growth Stage", GROWTH_STAGES),
        _f("growth_index", N, "Growth Index"),
        _f("growth_progression", N, "Growth Progression"),
        _f("growth_aggression", N, "Growth Aggression"),
        _f("growth_velocity", N, "Growth Velocity"),
        _f("placement", E, "Placement", ["P1", "P2", "P3", "P4", "P5", "S1", "R1"]),
        _f("outdoor_temperature", N, "Outdoor Temperature"),
        _f("outdoor_humidity", N, "Outdoor Humidity"),
        _f("todays_day_of_phase", INT, "Day of Phase"),
        _f("x_position", N, "X Position"),
        _f("y_position", N, "Y Position"),
        _f("trend_petri_velocity", E, "Petri Velocity Trend", TREND_VALUES),
        _f(
            "experimental_role",
            E,
            "Experimental Role",
            ["CONTROL", "EXPERIMENTAL", "IGNORE_COMBINED", "INDIVIDUAL_SAMPLE", "INSUFFICIENT_DATA"],
        ),
        _f("image_url", T, "Image URL"),
        _f("created_at", TS, "Created Date"),
        _f("updated_at", TS, "Updated Date"),
    ],
)

GASIFIER_OBSERVATIONS = DataSource(
    id="gasifier_observations",
    name="Gasifier Observations",
    description="Gasifier placement and effectiveness data",
    table="gasifier_observations_partitioned",
    is_partitioned=True,
    partition_keys=["program_id", "site_id", "submission_id"],
    fields=[
        _f("observation_id", U, "Observation ID"),
        _f("submission_id", U, "Submission ID"),
        _f("program_id", U, "Program ID"),
        _f("site_id", U, "Site ID"),
        _f("gasifier_code", T, "Gasifier Code"),
        _f(
            "chemical_type",
            E,
            "Chemical Type",
            ["CLO2", "Chemical A", "Chemical B", "Chemical C", "Chemical D"],
        ),
        _f("anomaly", B, "Anomaly Detected"),
        _f("measure", N, "Gasifier Reading"),
        _f("linear_reading", N, "Linear Reading"),
        _f("linear_reduction_per_day", N, "Momentum of Flow"),
        _f("flow_rate", N, "Flow Rate"),
        _f("footage_from_origin_x", N, "X Coordinate"),
        _f("footage_from_origin_y", N, "Y Coordinate"),
        _f("placement_height", E, "Placement Height", ["Floor", "Low", "Medium", "High", "Ceiling"]),
        _f(
            "directional_placement",
            E,
            "Directional Placement",
            [
                "North",
                "South",
                "East",
                "West",
                "Northeast",
                "Northwest",
                "Southeast",
                "Southwest",
                "Center",
            ],
        ),
        _f("placement_strategy", E, "Placement Strategy", ["Strategic", "Random", "Grid", "Perimeter"]),
        _f("outdoor_temperature", N, "Outdoor Temperature"),
        _f("outdoor_humidity", N, "Outdoor Humidity"),
        _f("trend_gasifier_velocity", E, "Gasifier Velocity Trend", TREND_VALUES),
        _f("forecasted_expiration", TS, "Forecasted Expiration"),
        _f("image_url", T, "Image URL"),
        _f("notes", T, "Notes"),
        _f("created_at", TS, "Created Date"),
        _f("last_updated_by_user_id", U, "Last Updated By"),
    ],
)

SUBMISSIONS = DataSource(
    id="submissions",
    name="Environmental Submissions",
    description="Environmental conditions and submission data",
    table="submissions",
    fields=[
        _f("submission_id", U, "Submission ID"),
        _f("site_id", U, "Site ID"),
        _f("program_id", U, "Program ID"),
        _f("temperature", N, "Temperature (°F)"),
        _f("humidity", N, "Humidity (%)"),
        _f("indoor_temperature", N, "Indoor Temperature (°F)"),
        _f("indoor_humidity", N, "Indoor Humidity (%)"),
        _f("airflow", T, "Airflow"),
        _f("weather", T, "Weather"),
        _f("created_at", TS, "Created Date"),
    ],
)

# the real tables call these columns `name`, not site_name/program_name
SITES = DataSource(
    id="sites",
    name="Sites",
    description="Research site information",
    table="sites",
    fields=[
        _f("site_id", U, "Site ID"),
        _f("program_id", U, "Program ID"),
        _f("name", T, "Site Name"),
        _f("site_code", T, "Site Code"),
        _f("latitude", N, "Latitude"),
        _f("longitude", N, "Longitude"),
        _f("gasifier_deployment_date", D, "Gasifier Deployment Date"),
        _f("created_at", TS, "Created Date"),
    ],
)

PILOT_PROGRAMS = DataSource(
    id="pilot_programs",
    name="Pilot Programs",
    description="Research program information",
    table="pilot_programs",
    fields=[
        _f("program_id", U, "Program ID"),
        _f("company_id", U, "Company ID"),
        _f("name", T, "Program Name"),
        _f("phase_type", T, "Phase Type"),
        _f("status", T, "Status"),
        _f("start_date", D, "Start Date"),
        _f("end_date", D, "End Date"),
        _f("created_at", TS, "Created Date"),
    ],
)

DEFAULT_CATALOG = Catalog(
    data_sources=[PETRI_OBSERVATIONS, GASIFIER_OBSERVATIONS, SUBMISSIONS, SITES, PILOT_PROGRAMS]
)
