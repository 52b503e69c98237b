from __future__ import annotations

from pathlib import Path

import pytest

from stainless_service.errors import StagingError
from stainless_service.staging import stage_sources, staging_area


def test_staging_area_is_removed_on_exit() -> None:
    with staging_area() as workdir:
        assert workdir.is_dir()
        (workdir / "Candy.scala").write_text("object Candy")
    assert not workdir.exists()


def test_staging_area_is_removed_on_error() -> None:
    seen: list[Path] = []
    with pytest.raises(RuntimeError):
        with staging_area() as workdir:
            seen.append(workdir)
            raise RuntimeError("boom")
    assert not seen[0].exists()


def test_staging_areas_are_distinct() -> None:
    with staging_area() as a, staging_area() as b:
        assert a != b


def test_staging_area_uses_prefix() -> None:
    with staging_area("stainless-test-") as workdir:
        assert workdir.name.startswith("stainless-test-")


def test_stage_sources_writes_contents_and_sorts(tmp_path: Path) -> None:
    names = stage_sources(tmp_path, {"B.scala": "object B", "A.scala": "object A"})
    assert names == ["A.scala", "B.scala"]
    assert (tmp_path / "A.scala").read_text() == "object A"
    assert (tmp_path / "B.scala").read_text() == "object B"


def test_stage_sources_empty_mapping(tmp_path: Path) -> None:
    assert stage_sources(tmp_path, {}) == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize("bad", ["", ".", "..", "../escape.scala", "sub/Candy.scala", "/abs/Candy.scala"])
def test_stage_sources_rejects_paths(tmp_path: Path, bad: str) -> None:
    with pytest.raises(StagingError) as exc_info:
        stage_sources(tmp_path, {bad: "x"})
    assert exc_info.value.code == -32010
    assert not (tmp_path.parent / "escape.scala").exists()
