import json

import pytest

BOARD_TEXT = """{
    "devices": {
        "clint": {"start": 0x2000000, "end": 0x2010000},
        "plic": {"start": 0xc000000, "end": 0xc400000},
        "revoker": {"start": 0x8000000, "length": 0x1000},
        "uart": {"start": 0x10000100, "length": 0x100}
    },
    "instruction_memory": {"start": 0x20040000, "end": 0x20080000},
    "timer_hz": 33000000
}
"""

ALLOCATOR_QUOTA = "00100000 00000000 00000000 00000000 00000000 00000000"

REPORT = {
    "compartments": {
        "alloc": {
            "exports": [{"export_symbol": "__export_alloc__Z13heap_allocatePv"}],
            "imports": [{"kind": "MMIO", "start": 134217728, "length": 4096}],
            "code": {"inputs": [{"file": "alloc.o"}]},
        },
        "hello": {
            "exports": [],
            "imports": [
                {"kind": "SealedObject", "contents": ALLOCATOR_QUOTA,
                 "sealing_type": {"compartment": "alloc", "key": "MallocKey"}},
                {"kind": "CompartmentExport", "export_symbol": "__export_alloc__Z13heap_allocatePv"},
            ],
            "code": {"inputs": [{"file": "hello.o"}]},
        },
    }
}


class StubEngine:
    """Records every call made across the engine boundary."""

    def __init__(self, result='{"expressions":[true]}'):
        self.result = result
        self.calls = []
        self.builtins = {}
        self.data = []
        self.input = None
        self.modules = []
        self.queries = []

    def add_data(self, document):
        self.calls.append("add_data")
        self.data.append(document)

    def set_input(self, document):
        self.calls.append("set_input")
        self.input = document

    def load_module(self, name, text):
        self.calls.append("load_module")
        self.modules.append((name, text))

    def register_builtin(self, name, arity, fn):
        self.calls.append("register_builtin")
        self.builtins[name] = (arity, fn)

    def query(self, text):
        self.calls.append("query")
        self.queries.append(text)
        return self.result


@pytest.fixture
def stub_engine():
    return StubEngine()


@pytest.fixture
def board_file(tmp_path):
    path = tmp_path / "board.json"
    path.write_text(BOARD_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def report_file(tmp_path):
    path = tmp_path / "firmware.json"
    path.write_text(json.dumps(REPORT), encoding="utf-8")
    return path
