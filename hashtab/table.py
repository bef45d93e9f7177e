from dataclasses import dataclass
import math
from typing import Any, Callable, Generic, Iterator, TypeVar

from .shared import trace


K = TypeVar("K")
V = TypeVar("V")

EqualFn = Callable[[Any, Any], bool]
HashFn = Callable[[Any, int], int]


DEFAULT_SIZE_HINT = 16
DEFAULT_LOAD_THRESHOLD = 0.8
MAX_BUCKET_COUNT = 2**32 - 1


@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class TableError:
    pass


@dataclass(frozen=True)
class AllocationFailure(TableError):
    pass


@dataclass(frozen=True)
class InvalidConfiguration(TableError):
    pass


@dataclass(frozen=True)
class LockedMutation(TableError):
    pass


TableResult = Ok | TableError


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Exhausted:
    pass


@dataclass
class Entry(Generic[K, V]):
    filled: bool
    key: K | None
    value: V | None
    prev: int | None
    next: int | None

    @classmethod
    def empty(cls):
        return Entry(False, None, None, None, None)


def allocate_slots(count: int) -> list["Entry | None"]:
    return [Entry.empty() for _ in range(count)]


@dataclass(eq=False)
class Table(Generic[K, V]):
    """Separately chained hash table.

    ``nodes`` is an arena: indices below ``bucket_count`` are the bucket
    slots, which head their chains and are never released. Overflow entries
    live above them and are linked by index through ``prev``/``next``.
    """

    bucket_count: int
    element_count: int
    load_threshold: float
    equal: EqualFn
    hash: HashFn
    iteration_depth: int
    nodes: list[Entry | None]
    free_nodes: list[int]

    def size(self) -> int:
        return self.element_count

    def __len__(self) -> int:
        return self.element_count

    def get(self, key: K) -> V | NotFound:
        if self.bucket_count == 0:
            return NotFound()

        _, node = self._find(key)
        if node is None:
            return NotFound()
        return self._entry(node).value

    def set(self, key: K, value: V) -> TableResult:
        if self.bucket_count == 0:
            return InvalidConfiguration()
        if self.iteration_depth > 0:
            trace("set refused: {0:d} cursor(s) open\n", self.iteration_depth)
            return LockedMutation()

        bucket, node = self._find(key)
        if node is not None:
            self._entry(node).value = value
            return Ok()

        new_load = (self.element_count + 1) / self.bucket_count
        if new_load > self.load_threshold:
            result = self._rehash()
            if result != Ok():
                return result
            bucket = self._bucket_of(key)

        head = self._entry(bucket)
        if head.filled:
            following = head.next
            try:
                index = self._alloc_node(Entry(True, key, value, bucket, following))
            except MemoryError:
                trace("overflow entry allocation failed in bucket {0:d}\n", bucket)
                return AllocationFailure()
            head.next = index
            if following is not None:
                self._entry(following).prev = index
        else:
            # a vacated head keeps its chain
            head.filled = True
            head.key = key
            head.value = value

        self.element_count += 1
        return Ok()

    def unset(self, key: K) -> TableResult:
        if self.bucket_count == 0:
            return InvalidConfiguration()
        if self.iteration_depth > 0:
            trace("unset refused: {0:d} cursor(s) open\n", self.iteration_depth)
            return LockedMutation()

        _, node = self._find(key)
        if node is None:
            return Ok()

        entry = self._entry(node)
        if entry.prev is not None:
            self._entry(entry.prev).next = entry.next
            if entry.next is not None:
                self._entry(entry.next).prev = entry.prev
            self._release_node(node)
        else:
            entry.filled = False
            entry.key = None
            entry.value = None

        self.element_count -= 1
        return Ok()

    def begin(self) -> "Cursor[K, V]":
        self.iteration_depth += 1
        return Cursor(table=self, index=0, node=0)

    def next(self, cursor: "Cursor[K, V]") -> tuple[K, V] | Exhausted:
        self._check_cursor(cursor)

        while cursor.index < self.bucket_count:
            entry = self._entry(cursor.node)
            if entry.next is not None:
                cursor.node = entry.next
            else:
                cursor.index += 1
                cursor.node = cursor.index
            if entry.filled:
                return entry.key, entry.value

        return Exhausted()

    def end(self, cursor: "Cursor[K, V]"):
        self._check_cursor(cursor)
        self.iteration_depth -= 1
        cursor.table = None

    def items(self) -> Iterator[tuple[K, V]]:
        """Yield every pair, holding a cursor until the generator finishes
        or is closed."""
        with self.begin() as cursor:
            yield from cursor

    def free(self):
        if self.iteration_depth > 0:
            raise RuntimeError(
                f"cannot free a table with {self.iteration_depth} open cursor(s)"
            )
        self.nodes = []
        self.free_nodes = []
        self.bucket_count = 0
        self.element_count = 0

    def _bucket_of(self, key: K) -> int:
        return self.hash(key, self.bucket_count) % self.bucket_count

    def _find(self, key: K) -> tuple[int, int | None]:
        bucket = self._bucket_of(key)

        node: int | None = bucket
        while node is not None:
            entry = self._entry(node)
            if entry.filled and self.equal(entry.key, key):
                return bucket, node
            node = entry.next

        return bucket, None

    def _entry(self, index: int) -> Entry:
        entry = self.nodes[index]
        assert entry is not None, index
        return entry

    def _alloc_node(self, entry: Entry) -> int:
        if self.free_nodes:
            index = self.free_nodes.pop()
            self.nodes[index] = entry
            return index

        self.nodes.append(entry)
        return len(self.nodes) - 1

    def _release_node(self, index: int):
        assert index >= self.bucket_count, index
        self.nodes[index] = None
        self.free_nodes.append(index)

    def _check_cursor(self, cursor: "Cursor[K, V]"):
        if cursor.table is None:
            raise RuntimeError("cursor is closed")
        if cursor.table is not self:
            raise RuntimeError("cursor belongs to another table")

    def _rehash(self) -> TableResult:
        new = init_table(
            self.element_count * 2, self.load_threshold, self.equal, self.hash
        )
        if isinstance(new, TableError):
            trace("rehash failed: {0}\n", new)
            return new

        with self.begin() as cursor:
            for key, value in cursor:
                result = new.set(key, value)
                if result != Ok():
                    trace("rehash failed: {0}\n", result)
                    new.free()
                    return result

        trace(
            "rehash {0:d} -> {1:d} buckets ({2:d} entries)\n",
            self.bucket_count,
            new.bucket_count,
            self.element_count,
        )
        self._swap_storage(new)
        new.free()
        return Ok()

    def _swap_storage(self, other: "Table[K, V]"):
        self.bucket_count, other.bucket_count = other.bucket_count, self.bucket_count
        self.element_count, other.element_count = other.element_count, self.element_count
        self.load_threshold, other.load_threshold = other.load_threshold, self.load_threshold
        self.nodes, other.nodes = other.nodes, self.nodes
        self.free_nodes, other.free_nodes = other.free_nodes, self.free_nodes


@dataclass(eq=False)
class Cursor(Generic[K, V]):
    table: Table[K, V] | None
    index: int
    node: int

    @property
    def closed(self) -> bool:
        return self.table is None

    def __iter__(self) -> "Cursor[K, V]":
        return self

    def __next__(self) -> tuple[K, V]:
        if self.table is None:
            raise RuntimeError("cursor is closed")
        item = self.table.next(self)
        if isinstance(item, Exhausted):
            raise StopIteration
        return item

    def __enter__(self) -> "Cursor[K, V]":
        return self

    def __exit__(self, *exc_info: Any):
        if self.table is not None:
            self.table.end(self)


def identity_equal(a: Any, b: Any) -> bool:
    return a is b


def identity_hash(obj: Any, maxhash: int) -> int:
    return id(obj) % maxhash


def hash_string(key: str) -> int:
    hash = 2166136261
    for i in range(len(key)):
        hash ^= ord(key[i])
        hash = (hash * 16777619) & 0xFFFFFFFF
    return hash


def string_hash(key: str, maxhash: int) -> int:
    return hash_string(key) % maxhash


def string_equal(a: str, b: str) -> bool:
    return a == b


def init_table(
    size_hint: int = 0,
    load_threshold: float = 0.0,
    equal: EqualFn | None = None,
    hash: HashFn | None = None,
) -> Table | TableError:
    if size_hint == 0:
        size_hint = DEFAULT_SIZE_HINT
    if load_threshold <= 0.0:
        load_threshold = DEFAULT_LOAD_THRESHOLD
    if equal is None:
        equal = identity_equal
    if hash is None:
        hash = identity_hash

    # also rejects NaN
    if size_hint < 0 or not load_threshold <= 1.0:
        trace("invalid configuration: size_hint={0} load_threshold={1}\n", size_hint, load_threshold)
        return InvalidConfiguration()

    buckets = (size_hint + 1) / load_threshold
    if not 0 < buckets <= MAX_BUCKET_COUNT:
        trace("invalid configuration: bucket_count={0}\n", buckets)
        return InvalidConfiguration()
    bucket_count = math.ceil(buckets)

    try:
        nodes = allocate_slots(bucket_count)
    except MemoryError:
        trace("slot allocation failed: bucket_count={0:d}\n", bucket_count)
        return AllocationFailure()

    return Table(
        bucket_count=bucket_count,
        element_count=0,
        load_threshold=load_threshold,
        equal=equal,
        hash=hash,
        iteration_depth=0,
        nodes=nodes,
        free_nodes=[],
    )


def init_table_default() -> Table | TableError:
    return init_table(0, 0.0, None, None)


def init_string_table(
    size_hint: int = 0, load_threshold: float = 0.0
) -> "Table[str, Any] | TableError":
    return init_table(size_hint, load_threshold, string_equal, string_hash)
