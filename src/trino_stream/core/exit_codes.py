"""Process exit codes for the trino-stream CLI.

Each TrinoStreamError subclass names its code through ``exit_code``;
``run()`` in cli/main.py turns that into the process status.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    # click/typer usage errors
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    # malformed or unexpected server responses, exhausted retries
    PROTOCOL_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    # the server reported the query as FAILED
    QUERY_FAILED = 8
    DECODING_ERROR = 9
    CANCELED = 10
    # 128 + SIGINT
    INTERRUPTED = 130
