"""Object metadata helpers: ownership labels, adoption and conditions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, MutableMapping

DEFAULT_SYSTEM_NAMESPACE = "rukpak-system"
DEFAULT_UNPACK_IMAGE = "quay.io/operator-framework/rukpak:main"
DEFAULT_UPLOAD_SERVICE_NAME = "core"

CORE_OWNER_KIND_KEY = "core.rukpak.io/owner-kind"
CORE_OWNER_NAME_KEY = "core.rukpak.io/owner-name"
CORE_BUNDLE_TEMPLATE_HASH_KEY = "core.rukpak.io/bundle-template-hash"

BUNDLE_DEPLOYMENT_KIND = "BundleDeployment"

_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"


@dataclass
class Condition:
    """A status condition of an object."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


def adopt_object(
    obj: MutableMapping[str, Any], system_namespace: str, bundle_deployment_name: str
) -> None:
    """Mark ``obj`` in place so the named bundle deployment can adopt it.

    The changes are not applied to any cluster; callers apply them.
    """
    metadata = obj.setdefault("metadata", {})

    annotations = dict(metadata.get("annotations") or {})
    annotations["meta.helm.sh/release-name"] = bundle_deployment_name
    annotations["meta.helm.sh/release-namespace"] = system_namespace
    metadata["annotations"] = annotations

    labels = dict(metadata.get("labels") or {})
    labels["app.kubernetes.io/managed-by"] = "Helm"
    labels[CORE_OWNER_KIND_KEY] = BUNDLE_DEPLOYMENT_KIND
    labels[CORE_OWNER_NAME_KEY] = bundle_deployment_name
    metadata["labels"] = labels


def merge_maps(*args: dict[str, str] | None) -> dict[str, str]:
    """Merge mappings left to right; later values win."""
    merged: dict[str, str] = {}
    for mapping in args:
        if mapping:
            merged.update(mapping)
    return merged


def generate_bundle_name(bd_name: str, hash: str) -> str:
    """Name of a bundle generated for a bundle deployment's template hash."""
    return f"{bd_name}-{hash}"


def pod_namespace(namespace_file: str = _NAMESPACE_FILE) -> str:
    """Namespace this process runs in, or the default when not in a pod."""
    try:
        with open(namespace_file, encoding="utf-8") as handle:
            return handle.read()
    except OSError:
        return DEFAULT_SYSTEM_NAMESPACE


def conditions_semantically_equal(a: Condition, b: Condition) -> bool:
    """Compare conditions ignoring their transition time."""
    return (
        a.type == b.type
        and a.status == b.status
        and a.reason == b.reason
        and a.message == b.message
        and a.observed_generation == b.observed_generation
    )