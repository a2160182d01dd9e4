def test_import_talonrun_package() -> None:
    import importlib

    module = importlib.import_module("talonrun")
    assert module is not None


def test_import_rng_no_side_effects() -> None:
    from talonrun.core.rng import RNG

    rng = RNG(42)
    value = rng.randint(0, 1)
    assert value in (0, 1)
    assert rng.calls == 1


def test_import_services_without_loading_catalogs() -> None:
    from talonrun.services import ExpeditionService, RunSaveService, StageBattleService

    assert ExpeditionService is not None
    assert RunSaveService is not None
    assert StageBattleService is not None
