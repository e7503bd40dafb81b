"""Tests for cosmopack.kernel_manager — support kernel lookup and loading."""

from unittest.mock import MagicMock, patch

import pytest


class TestKernelManager:
    @patch("cosmopack.kernel_manager.spice")
    def test_load_kernel_idempotent(self, mock_spice, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)

        fake_path = tmp_path / "test.tls"
        fake_path.write_text("fake kernel")

        km.load_kernel(fake_path)
        km.load_kernel(fake_path)  # second call should be no-op

        assert mock_spice.furnsh.call_count == 1
        assert km.is_loaded(fake_path)

    @patch("cosmopack.kernel_manager.spice")
    def test_unload_kernel(self, mock_spice, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)

        fake_path = tmp_path / "sat1_traj.bsp"
        fake_path.write_text("fake kernel")
        km.load_kernel(fake_path)
        km.unload_kernel(fake_path)
        km.unload_kernel(fake_path)

        assert mock_spice.unload.call_count == 1
        assert not km.is_loaded(fake_path)

    @patch("cosmopack.kernel_manager.spice")
    def test_unload_all(self, mock_spice, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)

        fake_path = tmp_path / "test.tls"
        fake_path.write_text("fake kernel")
        km.load_kernel(fake_path)

        km.unload_all()

        mock_spice.kclear.assert_called_once()
        assert km.list_loaded() == []
        assert km._generic_loaded is False

    @patch("cosmopack.kernel_manager.spice")
    def test_list_loaded(self, mock_spice, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)

        f1 = tmp_path / "a.tls"
        f2 = tmp_path / "b.bsp"
        f1.write_text("fake")
        f2.write_text("fake")
        km.load_kernel(f1)
        km.load_kernel(f2)

        loaded = km.list_loaded()
        assert "a.tls" in loaded
        assert "b.bsp" in loaded

    def test_kernel_dir_from_env(self, tmp_path, monkeypatch):
        from cosmopack.kernel_manager import KernelManager
        monkeypatch.setenv("COSMOPACK_KERNEL_DIR", str(tmp_path / "generic"))
        km = KernelManager()
        assert km.kernel_dir == tmp_path / "generic"
        assert not km.kernel_dir.exists()

    def test_find_support_kernel_sorted(self, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        lsk = tmp_path / "lsk"
        lsk.mkdir()
        (lsk / "naif0012.tls").write_text("new")
        (lsk / "naif0011.tls").write_text("old")
        (lsk / "readme.txt").write_text("not a kernel")

        assert km.find_support_kernel("lsk") == lsk / "naif0011.tls"

    def test_find_support_kernel_windows_suffix(self, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        (tmp_path / "lsk").mkdir()
        (tmp_path / "lsk" / "naif0012.tls.pc").write_text("pc")

        assert km.find_support_kernel("lsk").name == "naif0012.tls.pc"

    def test_find_support_kernel_missing(self, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        assert km.find_support_kernel("spk") is None

    def test_find_support_kernel_unknown_kind(self, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        with pytest.raises(KeyError, match="Unknown support kernel kind"):
            km.find_support_kernel("ck")

    @patch("cosmopack.kernel_manager.spice")
    def test_ensure_leapseconds_local(self, mock_spice, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        (tmp_path / "lsk").mkdir()
        lsk = tmp_path / "lsk" / "naif0012.tls"
        lsk.write_text("lsk")

        with patch.object(km, "download_kernel") as mock_dl:
            path = km.ensure_leapseconds()

        assert path == lsk
        mock_dl.assert_not_called()
        mock_spice.furnsh.assert_called_once_with(str(lsk.resolve()))

    def test_ensure_leapseconds_no_download(self, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        with pytest.raises(FileNotFoundError, match="leap-second"):
            km.ensure_leapseconds(allow_download=False)

    @patch("cosmopack.kernel_manager.spice")
    @patch("cosmopack.kernel_manager.KernelManager.download_kernel")
    def test_ensure_leapseconds_downloads(self, mock_dl, mock_spice, tmp_path):
        from cosmopack.kernel_manager import LEAPSECONDS_FILE, LEAPSECONDS_URL, KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        target = tmp_path / "lsk" / LEAPSECONDS_FILE
        mock_dl.return_value = target

        assert km.ensure_leapseconds() == target
        mock_dl.assert_called_once_with(LEAPSECONDS_URL, LEAPSECONDS_FILE, subdir="lsk")

    @patch("cosmopack.kernel_manager.spice")
    def test_ensure_generic_kernels_order(self, mock_spice, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        for sub, name in (("lsk", "naif0012.tls"), ("pck", "pck00011.tpc"),
                          ("spk/planets", "de440s.bsp")):
            (tmp_path / sub).mkdir(parents=True)
            (tmp_path / sub / name).write_text("k")

        km.ensure_generic_kernels(allow_download=False)
        km.ensure_generic_kernels(allow_download=False)

        loaded = [c.args[0] for c in mock_spice.furnsh.call_args_list]
        assert [p.rsplit("/", 1)[-1] for p in loaded] == [
            "naif0012.tls", "pck00011.tpc", "de440s.bsp"
        ]

    @patch("requests.get")
    def test_download_kernel(self, mock_get, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        resp = MagicMock()
        resp.iter_content.return_value = [b"DELTET/DELTA_T_A", b" = 32.184"]
        mock_get.return_value = resp

        path = km.download_kernel("https://example.invalid/naif0012.tls", "naif0012.tls", "lsk")

        assert path == tmp_path / "lsk" / "naif0012.tls"
        assert path.read_bytes() == b"DELTET/DELTA_T_A = 32.184"
        assert not (tmp_path / "lsk" / "naif0012.tmp").exists()

    @patch("requests.get")
    def test_download_kernel_failure(self, mock_get, tmp_path):
        from cosmopack.kernel_manager import KernelManager
        km = KernelManager(kernel_dir=tmp_path)
        mock_get.side_effect = ConnectionError("offline")

        with pytest.raises(RuntimeError, match="Failed to download"):
            km.download_kernel("https://example.invalid/naif0012.tls", "naif0012.tls")

    def test_singleton(self):
        from cosmopack.kernel_manager import get_kernel_manager
        assert get_kernel_manager() is get_kernel_manager()
