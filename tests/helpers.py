import sys

from srdl.pipeline import Stage, StreamMode


def python_stage(
    name: str,
    code: str,
    stdin: StreamMode = StreamMode.DEVNULL,
    stdout: StreamMode = StreamMode.DEVNULL,
    stderr: StreamMode = StreamMode.DEVNULL,
) -> Stage:
    return Stage(
        name=name,
        executable=sys.executable,
        args=("-c", code),
        stdin=stdin,
        stdout=stdout,
        stderr=stderr,
    )
