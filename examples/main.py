#!/usr/bin/env python3
"""
Example script demonstrating basic usage of the mongots library.

Run from the project root after installing the package:
    python examples/main.py examples/data
"""

from mongots import Config, parse_collections, render
from mongots.sources import JsonDocumentSource
import sys

def main():
    data_dir = "examples/data"
    if len(sys.argv) > 1:
        data_dir = sys.argv[1]

    print(f"Loading {data_dir}...")
    source = JsonDocumentSource(data_dir)
    config = Config(data_dir=data_dir, mongodb_types=True)

    result = parse_collections(source, source.list_collections(), config)

    for collection, declaration in render(result.schema):
        print(f"// {collection}")
        print(declaration)

    for report in result.reports:
        if not report.ok:
            print(f"Skipped {report.name}: {report.error}")


if __name__ == '__main__':
    main()
