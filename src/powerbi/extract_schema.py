"""Write the Power BI dataset's table metadata to a local `schema.json`.

The output is `{"tables": [...]}` exactly as returned by the dataset tables endpoint.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv

from src.app import create_backend
from src.config.settings import load_settings

DEFAULT_OUTPUT = Path("Coffee.Report/schema.json")


async def extract_schema(output: Path) -> int:
    """Fetch the dataset tables and write them to `output`. Returns the table count.

    Raises:
        RuntimeError: If the Power BI settings are incomplete.
        BackendError: If the tables cannot be fetched.
    """

    load_dotenv(".env")
    backend = create_backend(load_settings())
    if backend is None:
        raise RuntimeError(
            "POWERBI_TENANT_ID, POWERBI_CLIENT_ID, POWERBI_CLIENT_SECRET, POWERBI_WORKSPACE_ID and "
            "POWERBI_DATASET_ID are required (set them in .env or environment)"
        )

    tables = await backend.list_tables()
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps({"tables": tables}, indent=2, ensure_ascii=False), encoding="utf-8")
    return len(tables)


def main() -> None:
    """CLI entry point for schema extraction."""

    parser = argparse.ArgumentParser(description="Extract the Power BI dataset schema to JSON.")
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help=f"Where to write the schema (default: {DEFAULT_OUTPUT}).",
    )
    args = parser.parse_args()

    count = asyncio.run(extract_schema(args.output))
    print(f"Wrote {count} tables to {args.output}")


if __name__ == "__main__":
    main()
