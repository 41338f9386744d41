"""Integration test: real bottles through the full upload pipeline.

Uses the real GitHubPackagesClient with the HTTP layer and the ``brew``
subprocess replaced, so parsing, archive inspection, dedup, manifest
assembly and the pr-upload hand-off are all exercised together.
"""

from __future__ import annotations

import io
import json
import subprocess
from pathlib import Path
from typing import Any
from urllib.error import HTTPError

import pytest

from bottlepush.core.orchestrator import BatchStatus, UploadOrchestrator
from bottlepush.registry.ghcr import GhcrIndexReader, GitHubPackagesClient
from bottlepush.registry.pr_upload import PrUploadPublisher


class _Registry:
    """A tiny GHCR: serves indexes and learns tags from pr-upload runs."""

    def __init__(self) -> None:
        self.indexes: dict[str, list[str]] = {}
        self.uploads: list[dict[str, Any]] = []

    def urlopen(self, req, timeout=None):
        url = req.full_url
        if "/token?" in url:
            return _Response(json.dumps({"token": "anon"}).encode())
        path = url.split("/v2/homebrew/core/", 1)[1]
        image, _, tag = path.partition("/manifests/")
        refs = self.indexes.get(f"{image}:{tag}")
        if refs is None:
            raise HTTPError(url, 404, "Not Found", None, None)
        return _Response(json.dumps({
            "manifests": [
                {"annotations": {"org.opencontainers.image.ref.name": ref}} for ref in refs
            ]
        }).encode())

    def run(self, args, *, cwd, **kwargs):
        for json_file in Path(cwd).glob("*.bottle.json"):
            data = json.loads(json_file.read_text())
            self.uploads.append({"args": args, "bottle_json": data})
            for name, entry in data.items():
                bottle = entry["bottle"]
                pkg_version = entry["formula"]["pkg_version"]
                index = pkg_version + (f"-{bottle['rebuild']}" if bottle["rebuild"] else "")
                refs = self.indexes.setdefault(f"{name}:{index}", [])
                if "--keep-old" not in args:
                    refs.clear()
                for tag in bottle["tags"]:
                    ref = f"{pkg_version}.{tag}"
                    if bottle["rebuild"]:
                        ref += f".{bottle['rebuild']}"
                    refs.append(ref)
        return subprocess.CompletedProcess(args, 0, "", "")


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


@pytest.fixture
def registry(monkeypatch) -> _Registry:
    registry = _Registry()
    monkeypatch.setattr(subprocess, "run", registry.run)
    return registry


@pytest.fixture
def orchestrator(settings, registry) -> UploadOrchestrator:
    client = GitHubPackagesClient(
        settings,
        reader=GhcrIndexReader(settings, urlopen=registry.urlopen),
        publisher=PrUploadPublisher(settings),
    )
    return UploadOrchestrator(client, settings)


class TestFullPipeline:
    def test_first_upload_then_rerun_is_noop(self, orchestrator, registry, bottle_dir, make_bottle):
        make_bottle("wget-1.21.4.arm64_sonoma.bottle.tar.gz", {"arch": "arm64"})
        make_bottle("wget-1.21.4.x86_64_linux.bottle.tar.gz", None)
        make_bottle("jq-1.7.1_1.arm64_sonoma.bottle.1.tar.gz")

        first = orchestrator.run(bottle_dir)

        assert first.ok
        assert len(registry.uploads) == 2
        wget = next(u for u in registry.uploads if "wget" in u["bottle_json"])
        tags = wget["bottle_json"]["wget"]["bottle"]["tags"]
        assert set(tags) == {"arm64_sonoma", "x86_64_linux"}
        assert tags["arm64_sonoma"]["tab"] == {"arch": "arm64"}
        assert "tab" not in tags["x86_64_linux"]
        assert "--keep-old" not in wget["args"]
        assert registry.indexes["jq:1.7.1_1-1"] == ["1.7.1_1.arm64_sonoma.1"]

        second = orchestrator.run(bottle_dir)

        assert second.ok
        assert len(registry.uploads) == 2
        assert {o.status for o in second.outcomes} == {BatchStatus.SKIPPED}

    def test_new_platform_added_with_keep_old(self, orchestrator, registry, bottle_dir, make_bottle):
        registry.indexes["wget:1.21.4"] = ["1.21.4.arm64_sonoma"]
        make_bottle("wget-1.21.4.arm64_sonoma.bottle.tar.gz")
        make_bottle("wget-1.21.4.x86_64_linux.bottle.tar.gz")

        report = orchestrator.run(bottle_dir)

        assert report.ok
        upload = registry.uploads[0]
        assert "--keep-old" in upload["args"]
        assert list(upload["bottle_json"]["wget"]["bottle"]["tags"]) == ["x86_64_linux"]
        assert sorted(registry.indexes["wget:1.21.4"]) == [
            "1.21.4.arm64_sonoma",
            "1.21.4.x86_64_linux",
        ]

    def test_dry_run_leaves_registry_untouched(self, orchestrator, registry, bottle_dir, make_bottle):
        make_bottle("wget-1.21.4.arm64_sonoma.bottle.tar.gz")

        report = orchestrator.run(bottle_dir, dry_run=True)

        assert report.ok
        assert registry.uploads == []
        assert registry.indexes == {}

    def test_local_filename_is_absolute(self, orchestrator, registry, bottle_dir, make_bottle):
        path = make_bottle("wget-1.21.4.arm64_sonoma.bottle.tar.gz")
        orchestrator.run(bottle_dir)
        tag = registry.uploads[0]["bottle_json"]["wget"]["bottle"]["tags"]["arm64_sonoma"]
        assert tag["local_filename"] == str(path.resolve())
        assert tag["filename"] == "wget--1.21.4.arm64_sonoma.bottle.tar.gz"
