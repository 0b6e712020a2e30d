"""SDL Manifest — validates an SDL document and fingerprints the manifest it describes.

Invariants:
    - Input is SDL text (YAML) or an already-parsed mapping
    - Any structural problem raises SpecInvalidError naming the offending path
    - Fingerprint = sha256 over canonical JSON (sorted keys, no whitespace) of the
      manifest groups, so formatting-only SDL edits keep the same fingerprint
    - Pure derivation: no IO, no caching

Design Decisions:
    - Only the parts of SDL that shape the manifest are checked (services, compute
      profiles, placement, deployment); pricing and provider attributes are ignored
    - yaml.safe_load: SDL comes from the browser and must never construct objects
"""

import hashlib
import json
from typing import Any

import yaml

from preflight.core.errors import SpecInvalidError

SUPPORTED_VERSIONS = frozenset({"2.0", "2.1"})


class SdlManifestDeriver:
    """ManifestDeriver implementation over Akash SDL documents."""

    async def derive_fingerprint(self, spec: Any) -> bytes:
        return manifest_fingerprint(spec)


def manifest_fingerprint(spec: Any) -> bytes:
    groups = build_manifest_groups(load_sdl(spec))
    canonical = json.dumps(groups, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).digest()


def load_sdl(spec: Any) -> dict:
    if isinstance(spec, str):
        try:
            spec = yaml.safe_load(spec)
        except yaml.YAMLError as e:
            raise SpecInvalidError(f"SDL is not valid YAML: {e}")
    if not isinstance(spec, dict):
        raise SpecInvalidError("SDL must be a mapping")
    version = str(spec.get("version", ""))
    if version not in SUPPORTED_VERSIONS:
        raise SpecInvalidError(f"unsupported SDL version {version!r}")
    return spec


def _mapping(parent: dict, key: str, path: str) -> dict:
    value = parent.get(key)
    if not isinstance(value, dict) or not value:
        raise SpecInvalidError(f"{path}{key} must be a non-empty mapping")
    return value


def _service_entry(
    name: str, service: dict, count: int, resources: dict,
) -> dict:
    image = service.get("image")
    if not isinstance(image, str) or not image.strip():
        raise SpecInvalidError(f"services.{name}.image is required")
    return {
        "name": name,
        "image": image,
        "count": count,
        "command": service.get("command"),
        "args": service.get("args"),
        "env": service.get("env"),
        "expose": service.get("expose") or [],
        "resources": resources,
    }


def build_manifest_groups(sdl: dict) -> list[dict]:
    """Group deployed services by placement, in name order."""
    services = _mapping(sdl, "services", "")
    profiles = _mapping(sdl, "profiles", "")
    compute = _mapping(profiles, "compute", "profiles.")
    placements = _mapping(profiles, "placement", "profiles.")
    deployment = _mapping(sdl, "deployment", "")

    groups: dict[str, list[dict]] = {}
    for service_name, targets in sorted(deployment.items()):
        if service_name not in services:
            raise SpecInvalidError(f"deployment.{service_name} has no matching service")
        if not isinstance(targets, dict) or not targets:
            raise SpecInvalidError(f"deployment.{service_name} must name a placement")
        for placement_name, target in sorted(targets.items()):
            path = f"deployment.{service_name}.{placement_name}"
            if placement_name not in placements:
                raise SpecInvalidError(f"{path}: unknown placement")
            if not isinstance(target, dict):
                raise SpecInvalidError(f"{path} must be a mapping")
            profile = target.get("profile")
            if profile not in compute:
                raise SpecInvalidError(f"{path}.profile: unknown compute profile {profile!r}")
            count = target.get("count")
            if not isinstance(count, int) or isinstance(count, bool) or count < 1:
                raise SpecInvalidError(f"{path}.count must be a positive integer")
            resources = (compute[profile] or {}).get("resources")
            if not isinstance(resources, dict):
                raise SpecInvalidError(f"profiles.compute.{profile}.resources is required")
            groups.setdefault(placement_name, []).append(
                _service_entry(service_name, services[service_name] or {}, count, resources),
            )

    return [
        {"name": name, "services": entries}
        for name, entries in sorted(groups.items())
    ]
