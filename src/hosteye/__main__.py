"""Entry point for ``hosteye`` and ``python -m hosteye``."""

import contextlib
import os
import sys

from hosteye.cli import cli_main

EXIT_SIGINT = 130
EXIT_SIGPIPE = 141


def main() -> int:
    """Run the CLI and return its exit code."""
    try:
        cli_main()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except KeyboardInterrupt:
        return EXIT_SIGINT
    except BrokenPipeError:
        # The reader went away (e.g. `hosteye once | head`); point stdout at
        # /dev/null so the interpreter's final flush does not fail again
        devnull = os.open(os.devnull, os.O_WRONLY)
        with contextlib.suppress(OSError):
            os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)
        return EXIT_SIGPIPE
    return 0


if __name__ == "__main__":
    sys.exit(main())
