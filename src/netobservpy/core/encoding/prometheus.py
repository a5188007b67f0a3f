"""Prometheus text exposition format encoder for metric samples."""

from collections.abc import AsyncIterable, Iterable

from netobservpy.core.models import MetricSample, format_number

_HISTOGRAM_SUFFIXES = ("_bucket", "_sum", "_count")


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    pairs = ",".join(f'{k}="{_escape_label_value(v)}"' for k, v in labels.items())
    return "{" + pairs + "}"


def _family(name: str, histograms: set[str]) -> tuple[str, str]:
    """Return (family name, type) of a sample name."""
    for suffix in _HISTOGRAM_SUFFIXES:
        base = name.removesuffix(suffix)
        if base != name and base in histograms:
            return base, "histogram"
    if name.endswith("_total"):
        return name, "counter"
    return name, "untyped"


def encode_metrics(samples: Iterable[MetricSample]) -> str:
    """Encode samples to the Prometheus text format.

    Samples are grouped per metric family, each family preceded by its
    ``# TYPE`` line. Histogram families are recognized by their
    ``_bucket`` series.

    Returns:
        Text exposition, empty string if no samples.
    """
    samples = list(samples)
    histograms = {
        s.name.removesuffix("_bucket") for s in samples if s.name.endswith("_bucket")
    }
    families: dict[str, tuple[str, list[MetricSample]]] = {}
    for sample in samples:
        family, kind = _family(sample.name, histograms)
        families.setdefault(family, (kind, []))[1].append(sample)

    lines = []
    for family in sorted(families):
        kind, members = families[family]
        lines.append(f"# TYPE {family} {kind}")
        for sample in members:
            lines.append(
                f"{sample.name}{_format_labels(sample.labels)} "
                f"{format_number(sample.value)}"
            )
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


async def encode_current(samples: AsyncIterable[MetricSample]) -> str:
    """Encode the samples of an async scrape."""
    return encode_metrics([s async for s in samples])
