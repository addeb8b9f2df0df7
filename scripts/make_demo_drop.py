from __future__ import annotations

from pathlib import Path

def main():
    root = Path("inputmaps")
    area = root / "Test Area"
    (area / "ymaps").mkdir(parents=True, exist_ok=True)
    (area / "props" / "textures").mkdir(parents=True, exist_ok=True)
    (root / "Empty").mkdir(parents=True, exist_ok=True)

    (area / "ymaps" / "test_area.ymap").write_bytes(b"dummy_ymap")
    (area / "props" / "test_props.ytyp").write_bytes(b"dummy_ytyp")
    (area / "props" / "crate01.ydr").write_bytes(b"dummy_ydr")
    (area / "props" / "textures" / "crate01.ytd").write_bytes(b"dummy_ytd")
    (area / "props" / "crate01_col.ybn").write_bytes(b"dummy_ybn")
    (area / "notes.txt").write_text("not packaged", encoding="utf-8")
    (root / "Empty" / "readme.md").write_text("# No mapping files here\n", encoding="utf-8")

    print(f"Created demo input at: {root.resolve()}")

if __name__ == "__main__":
    main()
