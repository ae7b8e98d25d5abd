#!/usr/bin/env python3
"""
Create a small sample corpus structure database.

Useful for trying the converter without access to the archive database.

Usage:
    python scripts/create_sample_corpus.py [--db sample_corpus.db]
    python scripts/run_conversion.py -c sample_corpus.db MPI1000#
"""

import sys
import argparse
import logging
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ams2xacml.storage import NodeType, SQLiteCorpusStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# node id, type, handle, on-site, read rights, write rights, parent
SAMPLE_NODES = [
    ("MPI1000#", NodeType.CORPUS, "hdl:1839/00-0000-0000-0000-1000-0", True,
     "everybody", "corpman archivist@mpi.nl", None),
    ("MPI1001#", NodeType.SESSION, "hdl:1839/00-0000-0000-0000-1001-1@format=imdi", True,
     "everybody", "corpman alice@mpi.nl bob@mpi.nl", "MPI1000#"),
    ("MPI1002#", NodeType.OBJECT, "hdl:1839/00-0000-0000-0000-1002-2", True,
     "corpman alice@mpi.nl bob@mpi.nl carol", "nobody", "MPI1001#"),
    ("MPI1003#", NodeType.OBJECT, "hdl:1839/00-0000-0000-0000-1003-3", True,
     "all-authenticated", "nobody", "MPI1001#"),
    ("MPI1004#", NodeType.OBJECT, "hdl:1839/00-0000-0000-0000-1004-4", False,
     "everybody", "nobody", "MPI1001#"),
    ("MPI1005#", NodeType.CATALOGUE, "hdl:1839/00-0000-0000-0000-1005-5", True,
     "everybody", "cleared", "MPI1000#"),
]


def create_sample_corpus(db_path: str) -> int:
    """Write the sample nodes. Returns the number of nodes written."""
    with SQLiteCorpusStore(db_path) as store:
        for position, (node_id, node_type, handle, on_site, read, write, parent) in enumerate(SAMPLE_NODES):
            store.add_node(
                node_id,
                node_type,
                handle=handle,
                on_site=on_site,
                read_rights=read,
                write_rights=write,
            )
            if parent:
                store.add_child(parent, node_id, position)
    return len(SAMPLE_NODES)


def main():
    parser = argparse.ArgumentParser(description="Create a sample corpus structure database")
    parser.add_argument("--db", default="sample_corpus.db", help="SQLite database to create")
    args = parser.parse_args()

    count = create_sample_corpus(args.db)
    logger.info(f"Wrote {count} nodes to {args.db}")


if __name__ == "__main__":
    main()
