"""
Encode a CSV of URLs with the service's own URL feature extractor.

Input CSV must have:
- a 'url' column
- optionally a label column (one of: label, target, result, status, type, class)
  with values like {phishing, malicious, bad, 1} or {benign, good, safe, 0}

Usage:
  python -m phishguard.tools.export_features \
      --csv data/raw/kaggle_urls.csv \
      --out data/processed/url_features.csv

Rows whose URL cannot be parsed are skipped and counted.
"""

import argparse
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd

from phishguard.features.url_features import URL_FEATURE_NAMES, extract_url_features
from phishguard.utils.errors import MalformedUrlError
from phishguard.utils.logging_utils import configure_logging, get_logger

logger = get_logger()

POS = {"phish", "phishing", "malicious", "malware", "bad", "spam", "1", "true", "yes"}
NEG = {"benign", "legit", "good", "safe", "0", "false", "no"}

LABEL_CANDIDATES = ["label", "target", "result", "status", "type", "class"]


def normalize_label(v) -> int:
    s = str(v).strip().lower()
    if s in POS:
        return 1
    if s in NEG:
        return 0
    # numeric fallback
    try:
        return 1 if float(s) > 0 else 0
    except ValueError:
        return 0


def find_label_column(df: pd.DataFrame) -> Optional[str]:
    for c in LABEL_CANDIDATES:
        if c in df.columns:
            return c
    return None


def export_features(df: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """
    Returns (features frame, number of skipped rows). Columns are
    url, the 12 URL features in model order, and label when present.
    """
    if "url" not in df.columns:
        raise ValueError("Input CSV must have a 'url' column.")
    label_col = find_label_column(df)

    rows = []
    skipped = 0
    for record in df.to_dict("records"):
        url = record["url"]
        if not isinstance(url, str) or not url.strip():
            skipped += 1
            continue
        try:
            feats = extract_url_features(url)
        except MalformedUrlError as e:
            logger.debug(f"Skipping {e}")
            skipped += 1
            continue
        row = {"url": url, **feats}
        if label_col is not None:
            row["label"] = normalize_label(record[label_col])
        rows.append(row)

    columns = ["url", *URL_FEATURE_NAMES] + (["label"] if label_col is not None else [])
    return pd.DataFrame(rows, columns=columns), skipped


def main(argv=None):
    ap = argparse.ArgumentParser(description="Export URL model features for a CSV of URLs.")
    ap.add_argument("--csv", required=True)
    ap.add_argument("--out", default="data/processed/url_features.csv")
    ap.add_argument("--limit", type=int, default=0, help="optional cap for quick tests")
    args = ap.parse_args(argv)

    configure_logging(log_dir="")

    df = pd.read_csv(args.csv)
    if args.limit and len(df) > args.limit:
        df = df.sample(args.limit, random_state=42)

    out, skipped = export_features(df)

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out.to_csv(out_path, index=False)
    logger.info(f"Wrote {len(out)} rows to {out_path} ({skipped} skipped)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
