#!/usr/bin/env python3
"""
KUBEBIND STORE READERS - External Resource Access
-------------------------------------------------
Fetches the data fields of a named Secret or ConfigMap from a single
namespace. Two implementations share one dispatch surface:

  * KubeStoreReader      - live reads through the Kubernetes API
  * ManifestStoreReader  - in-memory reads over decoded manifests

Readers are stateless: nothing is cached, every call returns a fresh
mapping, and instances are safe to share between worker threads.

Author: KubeBind Team
"""

import base64
import binascii
import logging
import os
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from kubebind.core.errors import ExternalResourceNotFound, ExternalResourceUnreadable
from kubebind.core.models import ObjectType, StoreRef, stringify

logger = logging.getLogger("kubebind.readers")

DataValue = Union[str, bytes]


def decode_data(ref: StoreRef, encoded: Optional[Mapping[str, Any]]) -> Dict[str, DataValue]:
    """
    Base64-decodes a Secret `data` / ConfigMap `binaryData` field.
    Values that are valid UTF-8 come back as text, the rest as bytes.
    """
    decoded = {}
    for key, raw in (encoded or {}).items():
        try:
            blob = base64.b64decode(raw, validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise ExternalResourceUnreadable(
                ref.kind.value, ref.namespace, ref.name, f"key '{key}' is not valid base64: {e}"
            )
        try:
            decoded[key] = blob.decode("utf-8")
        except UnicodeDecodeError:
            decoded[key] = blob
    return decoded


class StoreReader:
    """
    Base reader. Subclasses implement `read_secret` and `read_config_map`.
    """

    def read(self, object_type: ObjectType, namespace: str, name: str) -> Dict[str, DataValue]:
        """Dispatches to the reader for `object_type`."""
        logger.debug(f"Reading {StoreRef(object_type, namespace, name)}")
        if object_type is ObjectType.SECRET:
            return self.read_secret(namespace, name)
        if object_type is ObjectType.CONFIG_MAP:
            return self.read_config_map(namespace, name)
        raise ValueError(f"Unsupported object type: {object_type}")

    def read_secret(self, namespace: str, name: str) -> Dict[str, DataValue]:
        raise NotImplementedError

    def read_config_map(self, namespace: str, name: str) -> Dict[str, DataValue]:
        raise NotImplementedError


class KubeStoreReader(StoreReader):
    """
    Reads Secrets and ConfigMaps through `CoreV1Api`. A 404 becomes
    ExternalResourceNotFound; every other API or transport failure
    becomes ExternalResourceUnreadable. No retries happen here.
    """

    def __init__(self, core_api: Optional[client.CoreV1Api] = None,
                 request_timeout: Optional[float] = None):
        self.core_api = core_api or client.CoreV1Api()
        self.request_timeout = request_timeout

    @classmethod
    def from_kubeconfig(cls, config_file: Optional[str] = None, context: Optional[str] = None,
                        request_timeout: Optional[float] = None) -> "KubeStoreReader":
        """
        Loads the kubeconfig (or the in-cluster service account config when
        running inside a pod and no file is given) and builds a reader.
        """
        if config_file or context or not os.path.isdir("/var/run/secrets/kubernetes.io/"):
            config.load_kube_config(config_file=config_file, context=context)
        else:
            config.load_incluster_config()
        return cls(client.CoreV1Api(), request_timeout=request_timeout)

    def _call(self, ref: StoreRef, method, **kwargs):
        if self.request_timeout is not None:
            kwargs["_request_timeout"] = self.request_timeout
        try:
            return method(name=ref.name, namespace=ref.namespace, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise ExternalResourceNotFound(ref.kind.value, ref.namespace, ref.name)
            raise ExternalResourceUnreadable(
                ref.kind.value, ref.namespace, ref.name, f"API error {e.status}: {e.reason}"
            )
        except Exception as e:
            # urllib3 / socket failures surface as assorted exception types
            raise ExternalResourceUnreadable(ref.kind.value, ref.namespace, ref.name, str(e))

    def read_secret(self, namespace: str, name: str) -> Dict[str, DataValue]:
        ref = StoreRef(ObjectType.SECRET, namespace, name)
        secret = self._call(ref, self.core_api.read_namespaced_secret)
        return decode_data(ref, secret.data)

    def read_config_map(self, namespace: str, name: str) -> Dict[str, DataValue]:
        ref = StoreRef(ObjectType.CONFIG_MAP, namespace, name)
        config_map = self._call(ref, self.core_api.read_namespaced_config_map)
        data: Dict[str, DataValue] = dict(config_map.data or {})
        data.update(decode_data(ref, config_map.binary_data))
        return data


class ManifestStoreReader(StoreReader):
    """
    Serves Secrets and ConfigMaps from already-decoded manifests, for
    offline resolution and tests. Manifests without a namespace land in
    `default_namespace`.
    """

    def __init__(self, manifests: Iterable[Mapping[str, Any]] = (),
                 default_namespace: str = "default"):
        self.default_namespace = default_namespace
        self.objects: Dict[Tuple[ObjectType, str, str], Mapping[str, Any]] = {}
        for manifest in manifests:
            self.add(manifest)

    def add(self, manifest: Mapping[str, Any]) -> bool:
        """
        Registers one manifest. Returns False (and ignores it) when the
        manifest is not a Secret or ConfigMap.
        """
        if not isinstance(manifest, Mapping):
            return False
        try:
            kind = ObjectType.parse(manifest.get("kind", ""))
        except ValueError:
            return False

        metadata = manifest.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise ValueError(f"{kind.value} manifest without metadata.name")
        namespace = metadata.get("namespace") or self.default_namespace
        self.objects[(kind, namespace, name)] = manifest
        return True

    def _lookup(self, ref: StoreRef) -> Mapping[str, Any]:
        manifest = self.objects.get((ref.kind, ref.namespace, ref.name))
        if manifest is None:
            raise ExternalResourceNotFound(ref.kind.value, ref.namespace, ref.name)
        return manifest

    def read_secret(self, namespace: str, name: str) -> Dict[str, DataValue]:
        ref = StoreRef(ObjectType.SECRET, namespace, name)
        manifest = self._lookup(ref)
        data = decode_data(ref, manifest.get("data"))
        # stringData is merged over data, as the API server does on write
        data.update({k: stringify(v) for k, v in (manifest.get("stringData") or {}).items()})
        return data

    def read_config_map(self, namespace: str, name: str) -> Dict[str, DataValue]:
        ref = StoreRef(ObjectType.CONFIG_MAP, namespace, name)
        manifest = self._lookup(ref)
        data: Dict[str, DataValue] = {k: stringify(v) for k, v in (manifest.get("data") or {}).items()}
        data.update(decode_data(ref, manifest.get("binaryData")))
        return data
