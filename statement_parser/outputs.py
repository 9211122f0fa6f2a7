from __future__ import annotations

import csv
import json
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from .models import DetectedSection, ParsedStatement, TradeRow, ValidationResult


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)  # JSON-friendly
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def write_csv(trades: List[TradeRow], out_path: Path) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, lineterminator="\n")
        w.writerow(["date", "side", "symbol", "category", "price", "quantity", "commission"])
        for t in trades:
            w.writerow([
                t.date, t.side, t.symbol, t.category.value,
                f"{t.price:.4f}", t.quantity, f"{t.commission:.2f}"
            ])


def statement_to_dict(statement: ParsedStatement, validation: Optional[ValidationResult] = None) -> dict:
    data = asdict(statement)
    data.pop("raw_sections", None)
    if validation is not None:
        data["validation"] = asdict(validation)
    return data


def write_json(
    statement: ParsedStatement, out_path: Path, validation: Optional[ValidationResult] = None
) -> None:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(
            statement_to_dict(statement, validation),
            f,
            ensure_ascii=False,
            indent=2,
            default=_json_default,
        )


def write_sections(sections: List[DetectedSection], out_path: Path) -> None:
    """Dump detected sections with their fragment text, for debugging layouts."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(
            [
                {
                    "type": s.type.value,
                    "header_text": s.header_text,
                    "start_index": s.start_index,
                    "end_index": s.end_index,
                    "start_page": s.start_page,
                    "end_page": s.end_page,
                    "text": [item.text for item in s.items],
                }
                for s in sections
            ],
            f,
            ensure_ascii=False,
            indent=2,
        )
