"""Private value generation for DA buyers (valuations) and sellers (costs)."""

import random


def generate_valuations(
    minimum: float,
    maximum: float,
    increment: float,
    count: int,
    rng: random.Random | None = None,
) -> list[float]:
    """`count` values drawn from the series min, min+inc, ..., <= max.

    The series repeats when more values are needed than it holds, is
    shuffled (Fisher-Yates via `Random.shuffle`), then cut to `count`.
    A non-positive increment is treated as 1; an empty range yields `min`.
    """
    if count <= 0:
        return []
    rng = rng or random.Random()
    step = increment if increment and increment > 0 else 1

    series: list[float] = []
    v = minimum
    while v <= maximum:
        series.append(v)
        v += step
    if not series:
        series = [minimum]

    values: list[float] = []
    while len(values) < count:
        values.extend(series)
    rng.shuffle(values)
    return values[:count]


def generate_production_costs(
    minimum: float,
    maximum: float,
    increment: float,
    count: int,
    rng: random.Random | None = None,
) -> list[float]:
    return generate_valuations(minimum, maximum, increment, count, rng)
