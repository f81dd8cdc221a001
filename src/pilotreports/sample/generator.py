"""Synthetic report data for demos and local development.

every chart type that cares about its data shape gets a generator that
produces something plausible for it (a grid for heatmaps, groups of 50 for
box plots, ...). everything else gets 20 generic records.

results are always tagged origin=sample so nobody mistakes them for the real
thing. pass a seeded random.Random to get the same data twice.
"""

import logging
import math
import random
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any

from pilotreports.models.catalog import FieldType
from pilotreports.models.report import ChartType, ReportConfig
from pilotreports.models.result import (
    AggregatedData,
    DataOrigin,
    ReportRecord,
    ResultMetadata,
    ResultShape,
)

logger = logging.getLogger(__name__)

SCORE_FIELDS = ("growth_index", "effectiveness_score")
TEMPERATURE_FIELDS = ("outdoor_temperature", "indoor_temperature")
HUMIDITY_FIELDS = ("outdoor_humidity", "indoor_humidity")

HEATMAP_X = [f"Zone {c}" for c in "ABCDEFGH"]
HEATMAP_Y = [f"Day {n}" for n in range(1, 8)]

BOX_GROUPS = ["Control", "Treatment A", "Treatment B", "Treatment C", "Treatment D"]
BOX_SAMPLES = 50
WEEKS = ["Week 1", "Week 2", "Week 3", "Week 4"]

SCATTER_SIZE = 200
SCATTER_GROUPS = ["Group A", "Group B", "Group C", "Group D"]
# (slope, intercept, noise): strong positive, strong negative, moderate, none
SCATTER_PATTERNS = [(1.2, 10, 15), (-0.8, 80, 20), (0.4, 40, 30), (0, 50, 40)]

HISTOGRAM_SIZE = 500
DISTRIBUTIONS = ["normal", "skewed", "bimodal", "uniform"]

TREEMAP_DAYS = 7
TREEMAP_SITES = {"Site A": 1.2, "Site B": 0.9, "Site C": 1.1, "Site D": 0.8}
TREEMAP_PETRI_CODES = ["P001", "P002", "P003", "P004", "P005"]

SPATIAL_SITES = 50
LAT_RANGE = (40.0, 45.0)
LNG_RANGE = (-120.0, -115.0)
# (lat, lng, radius, effectiveness, variance)
SPATIAL_CLUSTERS = [
    (41.5, -118.5, 0.8, 85, 10),
    (43.2, -117.0, 1.0, 45, 15),
    (42.0, -119.0, 0.6, 70, 8),
    (44.0, -116.5, 0.7, 60, 12),
]
REGIONS = ["North", "South", "East", "West", "Central"]

DEFAULT_SIZE = 20
PLACEMENTS = ["P1", "P2", "P3", "P4", "P5", "S1", "R1"]
GROWTH_STAGES = ["None", "Trace", "Low", "Moderate", "High"]
PROGRAM_NAMES = [
    "Seedling Phase 1",
    "Growth Optimization Study",
    "Environmental Impact Analysis",
    "Yield Enhancement Program",
    "Pest Resistance Trial",
]
SITE_NAMES = [
    "Greenhouse Alpha",
    "Field Station Beta",
    "Laboratory Gamma",
    "Research Facility Delta",
    "Test Site Epsilon",
]
FIRST_GLOBAL_SUBMISSION_ID = 1100001


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def fake_uuid(prefix: str, index: int) -> str:
    """A uuid-shaped id that says what it is: obs00000-0000-4000-8000-000000000001"""
    return f"{prefix}{'0' * (8 - len(prefix))}-0000-4000-8000-{index:012x}"


class SampleDataGenerator:
    """Builds sample AggregatedData for a report config."""

    def __init__(self, rng: random.Random | None = None, today: date | None = None) -> None:
        self.rng = rng or random.Random()
        self.today = today

    def _today(self) -> date:
        return self.today or datetime.now(timezone.utc).date()

    def _normal(self) -> float:
        """Standard normal via Box-Muller."""
        u1 = 1.0 - self.rng.random()  # (0, 1], log(0) would blow up
        u2 = self.rng.random()
        return math.sqrt(-2 * math.log(u1)) * math.cos(2 * math.pi * u2)

    def generate(self, config: ReportConfig) -> AggregatedData:
        start = time.perf_counter()

        builders = {
            ChartType.HEATMAP: self._heatmap,
            ChartType.BOX_PLOT: self._box_plot,
            ChartType.SCATTER: self._scatter,
            ChartType.HISTOGRAM: self._histogram,
            ChartType.TREEMAP: self._treemap,
            ChartType.SPATIAL_EFFECTIVENESS: self._spatial,
        }
        records = builders.get(config.chart_type, self._default)(config)
        logger.debug("generated %d sample records for %s", len(records), config.chart_type.value)

        return AggregatedData(
            data=records,
            total_count=len(records),
            filtered_count=len(records),
            execution_time_ms=(time.perf_counter() - start) * 1000,
            origin=DataOrigin.SAMPLE,
            shape=ResultShape.SAMPLE,
            metadata=ResultMetadata(
                dimensions=config.dimensions,
                measures=config.measures,
                filters=config.all_filters(),
            ),
        )

    # --- chart shapes ---

    def _heatmap(self, config: ReportConfig) -> list[ReportRecord]:
        dim_keys = config.dimension_keys()
        records = []

        for x, x_label in enumerate(HEATMAP_X):
            for y, y_label in enumerate(HEATMAP_Y):
                dimensions: dict[str, Any] = {}
                if len(dim_keys) >= 2:
                    dimensions[dim_keys[0]] = x_label
                    dimensions[dim_keys[1]] = y_label
                elif len(dim_keys) == 1:
                    dimensions[dim_keys[0]] = x_label
                    dimensions["y_category"] = y_label

                base = 50 + math.sin(x * 0.5) * 20 + math.cos(y * 0.7) * 15
                noise = (self.rng.random() - 0.5) * 10

                measures = {}
                for measure, key in zip(config.measures, config.measure_keys()):
                    if measure.field in SCORE_FIELDS:
                        value = clamp(base + noise, 0, 100)
                    elif measure.field == "outdoor_temperature":
                        value = 65 + x * 2 + y * 1.5 + noise
                    elif measure.field == "outdoor_humidity":
                        value = clamp(80 - x * 3 - y * 2 + noise, 0, 100)
                    else:
                        value = max(0, base + noise)
                    measures[key] = value

                metadata = {
                    "observation_id": f"obs-{x}-{y}",
                    "x_position": x,
                    "y_position": y,
                    "placement": x_label,
                    "day_of_phase": y + 1,
                }
                records.append(ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata))

        return records

    def _box_plot(self, config: ReportConfig) -> list[ReportRecord]:
        dim_keys = config.dimension_keys()
        records = []

        for group_index, group in enumerate(BOX_GROUPS):
            mean = 50 + group_index * 8
            stddev = 8 + group_index * 0.5
            skew = 0.8 if group_index == 2 else 0.0

            for i in range(BOX_SAMPLES):
                dimensions: dict[str, Any] = {}
                if dim_keys:
                    dimensions[dim_keys[0]] = group
                if len(dim_keys) >= 2:
                    dimensions[dim_keys[1]] = WEEKS[int(i / (BOX_SAMPLES / len(WEEKS)))]

                measures = {}
                for measure, key in zip(config.measures, config.measure_keys()):
                    z = self._normal()
                    if skew:
                        z += skew * z * z * math.copysign(1, z)
                    value = mean + z * stddev

                    if self.rng.random() < 0.05:
                        spread = 3 * stddev + self.rng.random() * stddev
                        value = mean - spread if self.rng.random() < 0.5 else mean + spread

                    if measure.field in SCORE_FIELDS:
                        value = clamp(value, 0, 100)
                    elif measure.field == "outdoor_temperature":
                        value = clamp(70 + value * 0.3, 40, 100)
                    elif measure.field == "outdoor_humidity":
                        value = clamp(60 + value * 0.4, 20, 100)
                    measures[key] = value

                metadata = {
                    "sample_id": f"{group.replace(' ', '_').lower()}_{i + 1}",
                    "group": group,
                    "group_index": group_index,
                    "sample_index": i,
                }
                records.append(ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata))

        return records

    def _scatter(self, config: ReportConfig) -> list[ReportRecord]:
        dim_keys = config.dimension_keys()
        measure_keys = config.measure_keys()
        fields = [m.field for m in config.measures]
        per_group = SCATTER_SIZE // len(SCATTER_GROUPS)
        records = []

        for i in range(SCATTER_SIZE):
            group_index = i // per_group
            group = SCATTER_GROUPS[group_index]
            slope, intercept, noise = SCATTER_PATTERNS[group_index]

            dimensions: dict[str, Any] = {}
            if dim_keys:
                dimensions[dim_keys[0]] = group

            x = self.rng.random() * 100
            y = slope * x + intercept + (self.rng.random() - 0.5) * noise
            if self.rng.random() < 0.03:
                y = self.rng.random() * 100
            y = clamp(y, 0, 100)

            measures: dict[str, float] = {}
            if len(measure_keys) >= 2:
                measures[measure_keys[0]] = 50 + x * 0.4 if fields[0] in TEMPERATURE_FIELDS else x
                measures[measure_keys[1]] = 50 + y * 0.4 if fields[1] in TEMPERATURE_FIELDS else y
            if len(measure_keys) >= 3:
                # bubble size, loosely follows y
                measures[measure_keys[2]] = max(5, y * 0.5 + (self.rng.random() - 0.5) * 20)

            metadata = {
                "point_id": f"point_{i + 1}",
                "group": group,
                "group_index": group_index,
                "x_original": x,
                "y_original": y,
            }
            records.append(ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata))

        return records

    def _histogram_value(self, distribution: str) -> float:
        if distribution == "normal":
            return 50 + self._normal() * 15
        if distribution == "skewed":
            return math.exp(3 + self._normal() * 0.5) * 0.5
        if distribution == "bimodal":
            peak = 30 if self.rng.random() < 0.5 else 70
            return peak + self._normal() * 10
        value = self.rng.random() * 80 + 10
        if self.rng.random() < 0.05:
            value = self.rng.random() * 10 if self.rng.random() < 0.5 else 90 + self.rng.random() * 10
        return value

    def _histogram(self, config: ReportConfig) -> list[ReportRecord]:
        dim_keys = config.dimension_keys()
        distribution = self.rng.choice(DISTRIBUTIONS)
        records = []

        for i in range(HISTOGRAM_SIZE):
            dimensions: dict[str, Any] = {}
            if dim_keys:
                dimensions[dim_keys[0]] = "All Data"

            measures = {}
            for measure, key in zip(config.measures, config.measure_keys()):
                value = self._histogram_value(distribution)
                if measure.field in SCORE_FIELDS:
                    value = clamp(value, 0, 100)
                elif measure.field in TEMPERATURE_FIELDS:
                    value = clamp(50 + value * 0.4, 40, 100)
                elif measure.field in HUMIDITY_FIELDS:
                    value = clamp(value, 20, 100)
                measures[key] = value

            metadata = {"sample_id": f"sample_{i + 1}", "distribution_type": distribution}
            records.append(ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata))

        return records

    def _treemap(self, config: ReportConfig) -> list[ReportRecord]:
        dim_keys = config.dimension_keys()
        today = self._today()
        records = []

        for t in range(TREEMAP_DAYS):
            day = (today - timedelta(days=TREEMAP_DAYS - t - 1)).isoformat()
            stage = "early" if t < 2 else "mid" if t < 5 else "late"

            for site, site_multiplier in TREEMAP_SITES.items():
                for petri_code in TREEMAP_PETRI_CODES:
                    dimensions: dict[str, Any] = {}
                    for key, value in zip(dim_keys, (site, petri_code, day)):
                        dimensions[key] = value

                    measures: dict[str, float] = {}
                    for measure, key in zip(config.measures, config.measure_keys()):
                        base = self.rng.random() * 50 + 20
                        growth_rate = 1 + self.rng.random() * 0.3
                        noise = (self.rng.random() - 0.5) * 10
                        value = clamp(base * growth_rate**t * site_multiplier + noise, 0, 100)

                        if measure.field == "colony_count":
                            value = math.floor(value * 10)
                        elif measure.field == "effectiveness_score":
                            value = max(0, 100 - value)
                        measures[key] = value

                    metadata = {
                        "site_id": site.lower().replace(" ", "_"),
                        "petri_code": petri_code,
                        "observation_date": day,
                        "day_number": t + 1,
                        "growth_stage": stage,
                    }
                    records.append(
                        ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata)
                    )

        return records

    def _spatial(self, config: ReportConfig) -> list[ReportRecord]:
        dim_keys = config.dimension_keys()
        lat_min, lat_max = LAT_RANGE
        lng_min, lng_max = LNG_RANGE
        per_region = SPATIAL_SITES // len(REGIONS)
        records = []

        for i in range(SPATIAL_SITES):
            if self.rng.random() < 0.7:
                c_lat, c_lng, radius, effectiveness, variance = self.rng.choice(SPATIAL_CLUSTERS)
                angle = self.rng.random() * 2 * math.pi
                distance = self.rng.random() * radius
                lat = c_lat + distance * math.cos(angle)
                lng = c_lng + distance * math.sin(angle)
                base = effectiveness + (self.rng.random() - 0.5) * variance
            else:
                lat = lat_min + self.rng.random() * (lat_max - lat_min)
                lng = lng_min + self.rng.random() * (lng_max - lng_min)
                base = self.rng.random() * 100

            dimensions: dict[str, Any] = {}
            if dim_keys:
                dimensions[dim_keys[0]] = f"Site_{i + 1}"
            if len(dim_keys) >= 2:
                dimensions[dim_keys[1]] = REGIONS[i // per_region]

            measures: dict[str, float] = {}
            for measure, key in zip(config.measures, config.measure_keys()):
                if measure.field == "latitude":
                    measures[key] = lat
                elif measure.field == "longitude":
                    measures[key] = lng
                elif measure.field in SCORE_FIELDS:
                    # warmer towards the north end of the region
                    lat_influence = (lat - lat_min) / (lat_max - lat_min) * 20 - 10
                    measures[key] = clamp(base + lat_influence, 0, 100)
                elif measure.field == "elevation":
                    lng_norm = (lng - lng_min) / (lng_max - lng_min)
                    measures[key] = (
                        500 + math.sin(lng_norm * math.pi) * 1500 + (self.rng.random() - 0.5) * 200
                    )
                elif measure.field == "treatment_count":
                    measures[key] = self.rng.randint(1, 10)
                else:
                    measures[key] = self.rng.random() * 100

            established = self._today() - timedelta(days=self.rng.random() * 365 * 5)
            metadata = {
                "site_id": f"site_{i + 1}",
                "site_name": f"Research Site {i + 1}",
                "latitude": lat,
                "longitude": lng,
                "establishment_date": established.isoformat(),
                "site_type": self.rng.choice(["experimental", "control", "monitoring"]),
                "soil_type": self.rng.choice(["clay", "loam", "sandy", "silt"]),
                "irrigation": "irrigated" if self.rng.random() > 0.5 else "rainfed",
            }
            records.append(ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata))

        return records

    def _default(self, config: ReportConfig) -> list[ReportRecord]:
        today = self._today()
        records = []

        for i in range(DEFAULT_SIZE):
            dimensions: dict[str, Any] = {}
            for dim, key in zip(config.dimensions, config.dimension_keys()):
                if dim.data_type == FieldType.ENUM and dim.enum_values:
                    dimensions[key] = dim.enum_values[i % len(dim.enum_values)]
                elif dim.data_type == FieldType.TEXT:
                    dimensions[key] = f"Text Value {i + 1}"
                elif dim.data_type in (FieldType.DATE, FieldType.TIMESTAMP):
                    dimensions[key] = (today - timedelta(days=i)).isoformat()
                else:
                    dimensions[key] = f"Value {i + 1}"

            measures: dict[str, float] = {}
            for measure, key in zip(config.measures, config.measure_keys()):
                if measure.field == "outdoor_temperature":
                    measures[key] = self.rng.randint(60, 89)
                elif measure.field == "outdoor_humidity":
                    measures[key] = self.rng.randint(40, 79)
                else:
                    measures[key] = self.rng.randint(1, 100)

            if i % 3 == 0:
                image_url = f"https://example.com/petri-images/sample-{i + 1}.jpg"
            elif i % 5 == 0:
                image_url = None
            else:
                image_url = f"https://picsum.photos/800/600?random={i + 1}"

            metadata = {
                "observation_id": fake_uuid("obs", i + 1),
                "submission_id": fake_uuid("sub", i + 1),
                "site_id": fake_uuid("sit", i + 1),
                "program_id": fake_uuid("prg", i + 1),
                "petri_code": f"PETRI_{i + 1:03d}",
                "created_at": (today - timedelta(days=i)).isoformat(),
                "placement": PLACEMENTS[i % len(PLACEMENTS)],
                "fungicide_used": "Yes" if i % 2 == 0 else "No",
                "petri_growth_stage": GROWTH_STAGES[i % len(GROWTH_STAGES)],
                "image_url": image_url,
                "program_name": PROGRAM_NAMES[i % len(PROGRAM_NAMES)],
                "site_name": SITE_NAMES[i % len(SITE_NAMES)],
                "global_submission_id": FIRST_GLOBAL_SUBMISSION_ID + i,
            }
            records.append(ReportRecord(dimensions=dimensions, measures=measures, metadata=metadata))

        return records
