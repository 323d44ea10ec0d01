import sys
from importlib import metadata

import apichain


def test_dev_version(monkeypatch, mocker):
    # When apichain is run in dev environment without installation
    monkeypatch.delitem(sys.modules, "apichain.version")
    mocker.patch("importlib.metadata.version", side_effect=metadata.PackageNotFoundError)
    from apichain.version import APICHAIN_VERSION

    # Then it's version is "dev"
    assert APICHAIN_VERSION == "dev"


def test_public_api():
    assert apichain.WorkflowEngine is apichain.workflows.WorkflowEngine
    assert isinstance(apichain.__version__, str)
