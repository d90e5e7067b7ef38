from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from prettytable import PrettyTable

from records import Dimension, NONE_KEY
from report import HistogramSection, RankedSection, Report, ScalarSection


def render_table(rows: Sequence[Sequence[str]], out: Optional[TextIO] = None) -> None:
    """Print rows of cells as a bordered table; the count column is right aligned."""
    if not rows:
        print("  (no entries)", file=out)
        return

    columns = [f"col{i}" for i in range(len(rows[0]))]
    table = PrettyTable(field_names=columns, header=False)
    for name in columns[:-1]:
        table.align[name] = "l"
    table.align[columns[-1]] = "r"
    table.add_rows(rows)
    print(table.get_string(), file=out)


def histogram_rows(section: HistogramSection) -> List[List[str]]:
    width = max((len(str(b.upper)) for b in section.buckets), default=0)
    rows = [[bucket.label(width), str(bucket.count)] for bucket in section.buckets]
    if section.missing:
        rows.append([NONE_KEY, str(section.missing)])
    return rows


def render_report(report: Report, out: Optional[TextIO] = None) -> None:
    duration = report.section("duration").value
    print(file=out)
    if duration:
        print(f"Duration: {duration[0]} to {duration[1]}", file=out)
    else:
        print("Duration: no requests", file=out)
    print(file=out)
    print(f"Total Requests: {report.section('total_requests').value}", file=out)
    print(f"Total Errors  : {report.section('errors').value}", file=out)
    print(file=out)

    for section in report.sections:
        if isinstance(section, ScalarSection):
            continue
        print(f"{section.title}:", file=out)
        print(file=out)
        if isinstance(section, HistogramSection):
            render_table(histogram_rows(section), out)
        else:
            render_table([[str(key), str(count)] for key, count in section.rows], out)
        print(file=out)


def build_plot(report: Report, output_path: Path):
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    codes = report.section(Dimension.STATUS_CODE)
    second = report.section(Dimension.RESPONSE_TIME) or report.section(Dimension.METHOD)

    fig, axes = plt.subplots(1, 2, figsize=(10, 4))

    axes[0].bar([str(k) for k, _ in codes.rows], [v for _, v in codes.rows], color="#4f81bd")
    axes[0].set_title("Response codes")
    axes[0].set_ylabel("Requests")

    if isinstance(second, HistogramSection):
        axes[1].bar([b.label() for b in second.buckets], [b.count for b in second.buckets], color="#c0504d")
        axes[1].set_title("Response times")
        axes[1].tick_params(axis="x", labelrotation=45)
    elif isinstance(second, RankedSection):
        axes[1].bar([str(k) for k, _ in second.rows], [v for _, v in second.rows], color="#c0504d")
        axes[1].set_title("Request methods")
    axes[1].set_ylabel("Requests")

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
