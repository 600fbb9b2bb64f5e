"""Export: write a BuildResult's artifacts and diagnostics report to disk"""

import json
import logging
from pathlib import Path, PurePosixPath

from mdsite.core.models import BuildResult


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


def route_to_path(route: str) -> Path:
    """Map a route to a relative output path.

    '/' and routes ending in '/' become <route>/index.html; a route whose last
    segment has a suffix ('/feed.xml') is written as that file.
    """
    parts = [p for p in PurePosixPath(route).parts if p != '/']
    if any(p in ('..', '.') for p in parts):
        raise ValueError(f"Unsafe route: {route!r}")
    if route.endswith('/') or not parts or not PurePosixPath(parts[-1]).suffix:
        return Path(*parts, INDEX_FILE)
    return Path(*parts)


def build_report(result: BuildResult) -> dict:
    """Minimal JSON-serializable summary of a build: state, routes, diagnostics."""
    return {
        "state": result.state.value,
        "routes": sorted(result.artifacts),
        "diagnostics": [d.model_dump(mode="json") for d in result.diagnostics],
    }


def write_result(result: BuildResult, output_dir: Path, report: str = None) -> list[tuple[str, Path]]:
    """Write every artifact under output_dir. Returns (route, path) pairs sorted by route.

    When report is given, a JSON build report is written to output_dir/report.
    Raises ValueError, before anything is written, if two routes map to the same file.
    """
    owners: dict[Path, str] = {}
    for route in sorted(result.artifacts):
        rel = route_to_path(route)
        if rel in owners:
            raise ValueError(f"Routes {owners[rel]!r} and {route!r} both map to {rel.as_posix()}")
        owners[rel] = route

    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for rel, route in owners.items():
        dest = output_dir / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(result.artifacts[route])
        written.append((route, dest))
    logger.info("Wrote %d artifact(s) to %s", len(written), output_dir)

    if report:
        (output_dir / report).write_text(json.dumps(build_report(result), indent=2), encoding='utf-8')
    return written
