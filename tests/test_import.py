"""Test basic package imports."""


def test_package_import():
    """Test that the main package can be imported."""
    import hukd_notifier

    assert hukd_notifier.__version__ == "0.1.0"


def test_main_module_import():
    """Test that main modules can be imported."""
    from hukd_notifier import interfaces, main, orchestrator

    assert callable(main.main)
    assert orchestrator.NotifierOrchestrator
    assert interfaces.INotificationSink


def test_public_exports():
    from hukd_notifier import components, models, services

    for module in (components, models, services):
        for name in module.__all__:
            assert hasattr(module, name), f"{module.__name__} is missing {name}"
