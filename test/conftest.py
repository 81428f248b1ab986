from __future__ import annotations

import typing
from pathlib import Path

import pytest

from httpmessage.stream import ByteStream

from test import FILE_CONTENTS


@pytest.fixture()
def data_file(tmp_path: Path) -> Path:
    path = tmp_path / "data.bin"
    path.write_bytes(FILE_CONTENTS)
    return path


@pytest.fixture()
def file_stream(data_file: Path) -> typing.Generator[ByteStream, None, None]:
    with ByteStream.from_file(data_file, "rb") as stream:
        yield stream
