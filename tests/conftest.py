import base64

import pytest

from kubebind.readers.store import ManifestStoreReader


def b64(text):
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def db_object():
    """A custom resource exposing credentials in its status."""
    return {
        "metadata": {"name": "db", "namespace": "test-namespace"},
        "status": {
            "dbCredentials": {
                "username": "AzureDiamond",
                "password": "foo",
            },
        },
    }


@pytest.fixture
def bootstrap_object():
    return {
        "metadata": {"name": "kafka", "namespace": "test-namespace"},
        "status": {
            "bootstrap": [
                {"type": "http", "url": "www.example.com"},
                {"type": "https", "url": "secure.example.com"},
            ],
        },
    }


@pytest.fixture
def store():
    """In-memory store holding one Secret and one ConfigMap per test name."""
    return ManifestStoreReader([
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": "dbCredentials-secret", "namespace": "test-namespace"},
            "data": {"username": b64("user"), "password": b64("password")},
        },
        {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": "foo-dbCredentials-secret", "namespace": "test-namespace"},
            "data": {"username": b64("user"), "password": b64("password")},
        },
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "dbCredentials-configMap", "namespace": "test-namespace"},
            "data": {"username": "user", "password": "password"},
        },
    ])
