#!/usr/bin/env python3
"""Generate gRPC stubs from grpc_app/protos into grpc_app/generated.

Requires grpcio-tools (installed with the ``test`` extra).
"""
from __future__ import annotations

import re
import sys
from pathlib import Path

from grpc_tools import protoc
import grpc_tools


ROOT = Path(__file__).resolve().parents[1]
PROTO_ROOT = ROOT / "grpc_app" / "protos"
OUT_ROOT = ROOT / "grpc_app" / "generated"

# protoc emits imports relative to the proto root; make them package-absolute
_IMPORT_RE = re.compile(r"^from (accountd(?:\.\w+)*) import (\w+_pb2)", re.MULTILINE)


def _fix_imports(path: Path) -> None:
    text = path.read_text(encoding="utf-8")
    fixed = _IMPORT_RE.sub(r"from grpc_app.generated.\1 import \2", text)
    if fixed != text:
        path.write_text(fixed, encoding="utf-8")


def main() -> int:
    protos = sorted(PROTO_ROOT.rglob("*.proto"))
    if not protos:
        print(f"no .proto files under {PROTO_ROOT}", file=sys.stderr)
        return 1
    OUT_ROOT.mkdir(parents=True, exist_ok=True)
    well_known = Path(grpc_tools.__file__).parent / "_proto"
    args = [
        "grpc_tools.protoc",
        f"-I{PROTO_ROOT}",
        f"-I{well_known}",
        f"--python_out={OUT_ROOT}",
        f"--grpc_python_out={OUT_ROOT}",
        *[str(p.relative_to(PROTO_ROOT)) for p in protos],
    ]
    # protoc resolves the relative proto paths against the include dirs
    rc = protoc.main(args)
    if rc != 0:
        print("protoc failed", file=sys.stderr)
        return rc
    for generated in OUT_ROOT.rglob("*_pb2*.py"):
        _fix_imports(generated)
    print(f"generated stubs for {len(protos)} proto file(s) in {OUT_ROOT}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
