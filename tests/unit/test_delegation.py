"""Unit tests for DelegationLoader."""

import ctypes

import pytest

from gmod_autoloader.config.platform_key import PlatformKey
from gmod_autoloader.loader.delegation import (
    DelegationLoader,
    DelegationStatus,
    module_path_for,
)
from gmod_autoloader.updater.exceptions import ModuleLoadError, ModuleUnavailableError


def test_module_path_for(tmp_path):
    """Test installed module naming."""
    path = module_path_for(tmp_path, "gmsv_gmod_integration_loader", PlatformKey.WIN64)
    assert path == tmp_path / "gmsv_gmod_integration_loader_win64.dll"


class TestInvoke:
    """Tests for DelegationLoader.invoke()."""

    def test_missing_module_is_unavailable(self, tmp_path, library_factory_cls):
        """Should report UNAVAILABLE without trying to load anything."""
        factory = library_factory_cls()
        loader = DelegationLoader(tmp_path / "missing.dll", factory)

        result = loader.invoke("gmod13_open")

        assert result.status == DelegationStatus.UNAVAILABLE
        assert result.unavailable
        assert isinstance(result.error, ModuleUnavailableError)
        assert factory.loaded == []

    def test_directory_is_unavailable(self, tmp_path, library_factory_cls):
        """Should not treat a directory as an installed module."""
        (tmp_path / "module.dll").mkdir()
        loader = DelegationLoader(tmp_path / "module.dll", library_factory_cls())

        assert loader.invoke("gmod13_open").unavailable

    def test_load_failure(self, sample_module, library_factory_cls):
        """Should report LOAD_ERROR when the library cannot be opened."""
        factory = library_factory_cls(error=OSError("invalid ELF header"))
        loader = DelegationLoader(sample_module, factory)

        result = loader.invoke("gmod13_open")

        assert result.status == DelegationStatus.LOAD_ERROR
        assert isinstance(result.error, ModuleLoadError)
        assert result.error.symbol is None
        assert "invalid ELF header" in str(result.error)

    def test_missing_symbol(self, sample_module, library_factory_cls):
        """Should report LOAD_ERROR when the entry point is not exported."""
        loader = DelegationLoader(sample_module, library_factory_cls({"other": lambda ctx: 0}))

        result = loader.invoke("gmod13_open")

        assert result.status == DelegationStatus.LOAD_ERROR
        assert result.error.symbol == "gmod13_open"
        assert not result.invoked

    def test_invokes_with_context(self, sample_module, library_factory_cls):
        """Should pass the host context through and return the code."""
        received = []

        def gmod13_open(ctx):
            received.append(ctx)
            return 7

        context = object()
        factory = library_factory_cls({"gmod13_open": gmod13_open})
        loader = DelegationLoader(sample_module, factory)

        result = loader.invoke("gmod13_open", context)

        assert result.invoked
        assert result.code == 7
        assert result.symbol == "gmod13_open"
        assert received == [context]
        assert factory.loaded == [str(sample_module)]

    def test_module_loaded_on_every_call(self, sample_module, library_factory_cls):
        """Should reload so a file replaced mid-run is picked up."""
        factory = library_factory_cls({"gmod13_open": lambda ctx: 0, "gmod13_close": lambda ctx: 0})
        loader = DelegationLoader(sample_module, factory)

        loader.invoke("gmod13_open")
        loader.invoke("gmod13_close")

        assert factory.loaded == [str(sample_module), str(sample_module)]

    def test_entry_point_exception_propagates(self, sample_module, library_factory_cls):
        """Should not hide failures raised by the delegated call itself."""
        def gmod13_open(ctx):
            raise RuntimeError("crashed")

        loader = DelegationLoader(sample_module, library_factory_cls({"gmod13_open": gmod13_open}))

        with pytest.raises(RuntimeError):
            loader.invoke("gmod13_open")

    def test_unconvertible_context_is_load_error(self, sample_module, library_factory_cls):
        """Should report LOAD_ERROR when ctypes cannot pass the context."""
        calls = []
        prototype = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_void_p)
        gmod13_open = prototype(lambda ctx: calls.append(ctx) or 0)
        loader = DelegationLoader(sample_module, library_factory_cls({"gmod13_open": gmod13_open}))

        result = loader.invoke("gmod13_open", object())

        assert result.status == DelegationStatus.LOAD_ERROR
        assert isinstance(result.error, ModuleLoadError)
        assert isinstance(result.error.original_error, ctypes.ArgumentError)
        assert result.error.symbol == "gmod13_open"
        assert calls == []
