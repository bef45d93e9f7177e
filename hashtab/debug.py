from .shared import printf
from .table import Table


def dump_table(table: Table, name: str):
    printf(
        "== {0:s} ({1:d} entries, {2:d} buckets) ==\n",
        name,
        table.element_count,
        table.bucket_count,
    )

    for bucket in range(table.bucket_count):
        dump_bucket(table, bucket)


def dump_bucket(table: Table, bucket: int) -> int:
    """Print the chain headed by ``bucket``, one node per ``[...]``.

    An empty bracket is an unfilled head. Returns the number of live
    entries in the chain.
    """
    printf("{0:04d} ", bucket)

    live = 0
    node: int | None = bucket
    while node is not None:
        entry = table.nodes[node]
        assert entry is not None, node
        if entry.filled:
            printf("[{0!r}: {1!r}]", entry.key, entry.value)
            live += 1
        else:
            printf("[ ]")

        node = entry.next
        if node is not None:
            printf(" -> ")

    printf("\n")
    return live
