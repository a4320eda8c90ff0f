import argparse
import sys

# Kaggle "bitstampUSD_1-min_data" columns:
# Timestamp,Open,High,Low,Close,Volume_(BTC),Volume_(Currency),Weighted_Price
TIMESTAMP_COL = 0
WEIGHTED_PRICE_COL = 7


def filter_lines(lines, every: int = 60):
    """
    Yields `timestamp,price` lines for the bootstrap file.

    Keeps only every Nth input line (minutely -> hourly for N=60), keeps only
    the timestamp and weighted price columns, and drops header and NaN rows.
    """
    for line_no, line in enumerate(lines, start=1):
        if line_no != 1 and line_no % every != 0:
            continue

        cols = line.strip().split(",")
        if len(cols) <= WEIGHTED_PRICE_COL:
            continue

        ts = cols[TIMESTAMP_COL]
        price = cols[WEIGHTED_PRICE_COL]
        if "Time" in ts or "NaN" in ts or "NaN" in price:
            continue

        yield f"{ts},{price}"


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Convert a minutely Bitstamp CSV into the hourly timestamp,price bootstrap file.",
    )
    parser.add_argument("inputfile", help="Kaggle-style minutely Bitstamp CSV")
    parser.add_argument("--output", default="bitstamp.csv", help="Where to write the filtered file")
    parser.add_argument("--every", type=int, default=60, help="Keep one line out of this many")
    args = parser.parse_args()

    try:
        src = open(args.inputfile, "r", encoding="utf-8")
    except OSError:
        print(f"Couldn't find file {args.inputfile}", file=sys.stderr)
        sys.exit(1)

    written = 0
    with src, open(args.output, "w", encoding="utf-8") as out:
        for row in filter_lines(src, every=args.every):
            out.write(row + "\n")
            written += 1

    print(f"wrote {written} lines to {args.output}")


if __name__ == "__main__":
    main()
