import gzip

import pytest


@pytest.fixture
def write_file(tmp_path):
    """Write bytes to a file under tmp_path, gzip-compressed when the name ends in .gz"""
    def _write(name, data: bytes):
        path = tmp_path / name
        if name.endswith(".gz"):
            with gzip.open(path, "wb") as fh:
                fh.write(data)
        else:
            path.write_bytes(data)
        return str(path)
    return _write
