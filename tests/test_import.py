"""Basic import tests to verify package structure."""


def test_import_qdfield():
    """Verify main package imports."""
    import qdfield
    assert qdfield.__version__ == "0.1.0"


def test_import_core():
    """Verify core module structure exists."""
    from qdfield import core
    assert hasattr(core, "RegionGraph")


def test_import_lod():
    """Verify level-of-detail module structure exists."""
    from qdfield import lod
    assert hasattr(lod, "LevelTree")


def test_import_analysis():
    """Verify analysis module structure exists."""
    from qdfield import analysis
    assert hasattr(analysis, "check_topology")
