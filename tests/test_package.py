from __future__ import annotations

import openclaw_tescmd


class TestPackageExports:
    def test_version(self) -> None:
        assert openclaw_tescmd.__version__ == "0.3.0"

    def test_all_names_resolve(self) -> None:
        for name in openclaw_tescmd.__all__:
            assert hasattr(openclaw_tescmd, name), name
