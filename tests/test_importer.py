"""Tests for the import hook: imports and runpy as code-load accesses."""

import importlib
import runpy
from pathlib import Path

from codeshim import (
    CodeLoadFinder,
    CodeLoadLoader,
    Interceptor,
    ReplaceTransformer,
    TransformerRegistry,
)
from codeshim.testing import uppercase


class TestImports:
    def test_import_is_transformed(
        self, interceptor: Interceptor, registry: TransformerRegistry, module_dir: Path
    ) -> None:
        (module_dir / "shimmed_greeting.py").write_text('GREETING = "hello"\n')
        registry.register(ReplaceTransformer("greet", "hello", "goodbye"))
        importlib.invalidate_caches()
        interceptor.intercept()

        module = importlib.import_module("shimmed_greeting")

        assert module.GREETING == "goodbye"
        assert isinstance(module.__spec__.loader, CodeLoadLoader)

    def test_package_import_is_transformed(
        self, interceptor: Interceptor, registry: TransformerRegistry, module_dir: Path
    ) -> None:
        package = module_dir / "shimmed_pkg"
        package.mkdir()
        (package / "__init__.py").write_text('NAME = "hello"\n')
        (package / "child.py").write_text('NAME = "hello child"\n')
        registry.register(ReplaceTransformer("greet", "hello", "goodbye"))
        importlib.invalidate_caches()
        interceptor.intercept()

        pkg = importlib.import_module("shimmed_pkg")
        child = importlib.import_module("shimmed_pkg.child")

        assert pkg.NAME == "goodbye"
        assert child.NAME == "goodbye child"

    def test_no_bytecode_written(
        self, interceptor: Interceptor, registry: TransformerRegistry, module_dir: Path
    ) -> None:
        (module_dir / "shimmed_nocache.py").write_text("X = 1\n")
        registry.register(ReplaceTransformer("bump", "1", "2"))
        importlib.invalidate_caches()
        interceptor.intercept()

        module = importlib.import_module("shimmed_nocache")

        assert module.X == 2
        assert not (module_dir / "__pycache__").exists()

    def test_restored_interceptor_imports_raw_source(
        self, interceptor: Interceptor, registry: TransformerRegistry, module_dir: Path
    ) -> None:
        (module_dir / "shimmed_raw.py").write_text('GREETING = "hello"\n')
        registry.register(ReplaceTransformer("greet", "hello", "goodbye"))
        importlib.invalidate_caches()
        interceptor.intercept()
        interceptor.restore()

        module = importlib.import_module("shimmed_raw")

        assert module.GREETING == "hello"

    def test_get_source_is_transformed(
        self, interceptor: Interceptor, registry: TransformerRegistry, module_dir: Path
    ) -> None:
        (module_dir / "shimmed_source.py").write_text('GREETING = "hello"\n')
        registry.register(ReplaceTransformer("greet", "hello", "goodbye"))
        importlib.invalidate_caches()
        interceptor.intercept()

        module = importlib.import_module("shimmed_source")

        assert module.__spec__.loader.get_source("shimmed_source") == 'GREETING = "goodbye"\n'


class TestCodeLoadFinder:
    def test_claims_modules_under_root(self, tmp_path: Path) -> None:
        (tmp_path / "shimmed_inside.py").write_text("X = 1\n")
        finder = CodeLoadFinder([tmp_path])

        spec = finder.find_spec("shimmed_inside", [str(tmp_path)])

        assert spec is not None
        assert isinstance(spec.loader, CodeLoadLoader)

    def test_ignores_modules_outside_roots(self, tmp_path: Path) -> None:
        (tmp_path / "shimmed_outside.py").write_text("X = 1\n")
        finder = CodeLoadFinder([tmp_path / "elsewhere"])

        assert finder.find_spec("shimmed_outside", [str(tmp_path)]) is None

    def test_no_roots_claims_everything(self, tmp_path: Path) -> None:
        (tmp_path / "shimmed_any.py").write_text("X = 1\n")
        spec = CodeLoadFinder().find_spec("shimmed_any", [str(tmp_path)])
        assert spec is not None

    def test_unknown_module(self, tmp_path: Path) -> None:
        assert CodeLoadFinder().find_spec("shimmed_missing", [str(tmp_path)]) is None

    def test_root_prefix_is_not_a_match(self, tmp_path: Path) -> None:
        (tmp_path / "lib2").mkdir()
        (tmp_path / "lib2" / "shimmed_prefix.py").write_text("X = 1\n")
        finder = CodeLoadFinder([tmp_path / "lib"])

        assert finder.find_spec("shimmed_prefix", [str(tmp_path / "lib2")]) is None


class TestRunPath:
    def test_run_path_is_transformed(
        self, interceptor: Interceptor, registry: TransformerRegistry, tmp_path: Path
    ) -> None:
        script = tmp_path / "entry.py"
        script.write_text('value = "abc"\n')
        registry.register(uppercase())
        interceptor.intercept()

        namespace = runpy.run_path(str(script))

        assert namespace["VALUE"] == "ABC"
        assert "value" not in namespace
