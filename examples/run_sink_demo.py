#!/usr/bin/env python
"""
Demo: push a few change records through the sink into a local OpenSearch.

    docker run -p 9200:9200 -e discovery.type=single-node \
        -e DISABLE_SECURITY_PLUGIN=true opensearchproject/opensearch:2
    SEARCH_SINK_AUTO_CREATE=true python examples/run_sink_demo.py
"""

from loguru import logger

from search_sink import Record, build_task, get_settings


def main() -> None:
    task = build_task(get_settings())
    records = [
        Record("articles", key="a-1", value={"title": "Hello"}),
        Record("articles", key="a-2", value=b'{"title": "World"}'),
        Record("articles", key="a-1", value=None),
        Record("authors", key="u-1", value={"name": "Ada"}),
    ]
    with task:
        result = task.process_batch(records)
    if result.ok:
        logger.success(f"Applied {result.records} records in {result.requests} requests")
    else:
        logger.error(f"Batch {result.status.value}: {result.error}")


if __name__ == "__main__":
    main()
