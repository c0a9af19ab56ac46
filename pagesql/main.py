import sys

from .config import get_settings
from .engine import Engine
from .errors import PageSQLError
from .executor import CountResult
from .log import get_logger, setup_logging
from .values import Blob, Integer, Null, Real, Text, Value

logger = get_logger(__name__)

USAGE = "usage: pagesql <database path> <.dbinfo | .tables | SELECT ...>"


def render_value(value: Value, encoding: str = "utf-8") -> str:
    match value:
        case Null():
            return ""
        case Integer(number) | Real(number):
            return str(number)
        case Text():
            return value.decode(encoding)
        case Blob(data):
            return data.decode("utf-8", errors="replace")
    raise TypeError(f"Not a record value: {value!r}")


def run(database_file_path: str, command: str) -> None:
    with Engine.open(database_file_path) as engine:
        if command == ".dbinfo":
            metadata = engine.metadata()
            print(f"database page size: {metadata.page_size}")
            print(f"number of tables: {metadata.table_count}")
        elif command == ".tables":
            table_names = engine.table_names()
            if table_names:
                print(" ".join(table_names))
        elif command.lstrip()[:6].upper() == "SELECT":
            result = engine.query(command)
            if isinstance(result, CountResult):
                print(result.count)
                return

            # Read every row before printing, so a failure mid-scan
            # leaves no partial output behind
            encoding = engine.database.header.encoding
            rows = list(result.rows)
            for row in rows:
                print("|".join(render_value(value, encoding) for value in row))
        else:
            raise PageSQLError(f"Invalid command: {command}")


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    if len(args) < 2:
        print(USAGE, file=sys.stderr)
        return 2

    try:
        run(args[0], args[1])
    except PageSQLError as e:
        logger.debug("command_failed", error=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
