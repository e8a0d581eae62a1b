import importlib


def test_cnskit_package_exports():
    module = importlib.import_module("cnskit")
    assert hasattr(module, "NamespaceMirror")
    assert hasattr(module, "Session")
    assert hasattr(module, "BroadcastChannel")
    assert hasattr(module, "TransportStore")
    assert hasattr(module, "render")
    assert module.__version__.startswith("1.")


def test_cns_cli_exports_main():
    module = importlib.import_module("cns_cli")
    assert callable(module.main)
