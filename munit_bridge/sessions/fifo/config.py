"""Configuration for the FIFO session."""

from pathlib import Path

from pydantic import BaseModel


class FifoSessionConfig(BaseModel):
    """Configuration for a session reading its input from a pipe or file."""

    input_path: Path
    # Send ^U first to discard whatever is typed at the session prompt
    clear_line: bool = True
    workdir: Path | None = None
