from __future__ import annotations

FILE_CONTENTS = b"uploaded file contents\n"
