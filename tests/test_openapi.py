from __future__ import annotations

from pathlib import Path

import yaml

from branchflow.openapi import render_sample_openapi, write_sample_openapi


def test_sample_document_shape() -> None:
    document = yaml.safe_load(render_sample_openapi("My API"))
    assert document["openapi"] == "3.0.3"
    assert document["info"] == {"version": "1.0.0", "title": "My API"}

    operation = document["paths"]["/hello"]["get"]
    assert operation["operationId"] == "sayHello"
    assert "x-handler" not in operation
    assert operation["parameters"][0]["name"] == "name"
    assert operation["parameters"][0]["required"] is True
    assert sorted(operation["responses"]) == [200, 400, 403, 500]

    for schema in document["components"]["schemas"].values():
        assert schema["properties"] == {"message": {"type": "string"}}
        assert schema["required"] == ["message"]


def test_first_handler_language_is_annotated() -> None:
    document = yaml.safe_load(render_sample_openapi("My API", ["python", "typescript"]))
    assert document["paths"]["/hello"]["get"]["x-handler"] == {"language": "python"}


def test_writer_skips_existing_file(tmp_path: Path) -> None:
    spec_path = tmp_path / "model" / "main.yaml"

    assert write_sample_openapi(spec_path, "My API", ["python"])
    first = spec_path.read_bytes()

    assert not write_sample_openapi(spec_path, "My API", ["python"])
    assert spec_path.read_bytes() == first


def test_writer_output_is_deterministic(tmp_path: Path) -> None:
    write_sample_openapi(tmp_path / "a.yaml", "My API")
    write_sample_openapi(tmp_path / "b.yaml", "My API")
    assert (tmp_path / "a.yaml").read_bytes() == (tmp_path / "b.yaml").read_bytes()


def test_writer_keeps_user_edits(tmp_path: Path) -> None:
    spec_path = tmp_path / "main.yaml"
    spec_path.write_text("openapi: 3.0.3\n")
    assert not write_sample_openapi(spec_path, "My API")
    assert spec_path.read_text() == "openapi: 3.0.3\n"
