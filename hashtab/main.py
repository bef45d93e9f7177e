from dataclasses import dataclass
import sys

from .debug import dump_table
from .shared import printf, printf_err, set_debug_trace
from .table import (
    AllocationFailure,
    Cursor,
    LockedMutation,
    NotFound,
    Table,
    TableError,
    TableResult,
    init_string_table,
)


@dataclass(frozen=True)
class CommandOk:
    pass


@dataclass(frozen=True)
class CommandError:
    message: str


CommandResult = CommandOk | CommandError | TableError


@dataclass
class Session:
    table: Table[str, str]
    cursors: list[Cursor[str, str]]


session: Session


def init_session():
    global session
    table = init_string_table()
    assert isinstance(table, Table), table
    session = Session(table=table, cursors=[])


def execute(line: str) -> CommandResult:
    words = line.split()
    if not words or words[0].startswith("#"):
        return CommandOk()

    table = session.table
    match words:
        case ["set", key, value]:
            return check(table.set(key, value))
        case ["unset", key]:
            return check(table.unset(key))

        case ["get", key]:
            value = table.get(key)
            if isinstance(value, NotFound):
                printf("not found\n")
            else:
                printf("{0:s}\n", value)
        case ["size"]:
            printf("{0:d}\n", table.size())
        case ["items"]:
            for key, value in table.items():
                printf("{0:s} {1:s}\n", key, value)
        case ["dump"]:
            dump_table(table, "table")

        case ["begin"]:
            session.cursors.append(table.begin())
        case ["end"]:
            if not session.cursors:
                return CommandError("No open cursor to end.")
            table.end(session.cursors.pop())

        case [name, *_]:
            return CommandError(f"Unknown command or wrong arguments: '{name}'.")

    return CommandOk()


def check(result: TableResult) -> CommandResult:
    match result:
        case LockedMutation():
            printf_err(
                "Table is locked by {0:d} open cursor(s).\n",
                session.table.iteration_depth,
            )
        case AllocationFailure():
            printf_err("Out of memory.\n")
        case TableError():
            printf_err("Invalid table configuration.\n")
        case _:
            return CommandOk()
    return result


def run_source(source: str) -> CommandResult:
    for line_no, line in enumerate(source.splitlines(), start=1):
        result = execute(line)
        if isinstance(result, CommandError):
            printf_err("[line {0:d}] {1:s}\n", line_no, result.message)
        if not isinstance(result, CommandOk):
            return result
    return CommandOk()


def repl():
    while True:
        printf("> ")
        try:
            inpt = input()
        except EOFError:
            printf("\n")
            return

        result = execute(inpt)
        if isinstance(result, CommandError):
            printf_err("{0:s}\n", result.message)


def run_file(filepath: str):
    with open(filepath) as fp:
        result = run_source(fp.read())

    if isinstance(result, CommandError):
        sys.exit(65)
    if isinstance(result, TableError):
        sys.exit(70)


def main():
    args = sys.argv[1:]
    if args[:1] == ["--trace"]:
        set_debug_trace(True)
        args = args[1:]

    init_session()

    if len(args) == 0:
        repl()
    elif len(args) == 1:
        run_file(args[0])
    else:
        printf("Usage: hashtab [--trace] [path]\n")
        sys.exit(64)
