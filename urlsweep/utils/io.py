import csv
import io
from typing import List

from flask import Response

from ..models import ScanRow

CSV_FIELDS = ["url", "title", "components", "error"]


def rows_to_csv(rows: List[ScanRow], filename: str = "scan_rows.csv") -> Response:
    """Convert scan rows to a CSV flask response (components joined by ', ')."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for row in rows:
        item = row.to_dict()
        item["components"] = ", ".join(item["components"])
        writer.writerow(item)

    return Response(
        output.getvalue(), mimetype="text/csv", headers={"Content-disposition": f"attachment; filename={filename}"}
    )
