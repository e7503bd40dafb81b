"""
Generic support kernel lookup and loading.

KernelManager is a thread-safe singleton that handles:
- Locating generic kernels (LSK, PCK, planetary SPK) in a user-managed
  tree laid out like NAIF's generic_kernels (lsk/, pck/, spk/planets/)
- Tree location from the constructor, COSMOPACK_KERNEL_DIR, or
  ~/.cosmopack/kernels/
- Downloading the leap-second kernel from NAIF when the tree has none
- Loading/unloading kernels via spiceypy.furnsh/unload/kclear

CSPICE keeps a single global kernel pool and is not thread-safe, so every
SPICE call made anywhere in the package goes through ``KernelManager.lock``.
"""

import logging
import os
import threading
from pathlib import Path

import spiceypy as spice

logger = logging.getLogger("cosmopack")

_NAIF_BASE = "https://naif.jpl.nasa.gov/pub/naif"

LEAPSECONDS_FILE = "naif0012.tls"
LEAPSECONDS_URL = f"{_NAIF_BASE}/generic_kernels/lsk/{LEAPSECONDS_FILE}"

# Sub-directory and filename patterns for each kind of support kernel.
# Windows builds of the toolkit ship the LSK with a .pc suffix.
SUPPORT_KERNEL_LAYOUT: dict[str, tuple[str, tuple[str, ...]]] = {
    "lsk": ("lsk", ("*.tls", "*.tls.pc")),
    "pck": ("pck", ("*.bpc", "*.tpc")),
    "spk": ("spk/planets", ("*.bsp",)),
}


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_instance = None
_instance_lock = threading.Lock()


def get_kernel_manager() -> "KernelManager":
    """Return the KernelManager singleton."""
    global _instance
    if _instance is not None:
        return _instance
    with _instance_lock:
        if _instance is not None:
            return _instance
        _instance = KernelManager()
        return _instance


class KernelManager:
    """Thread-safe manager for support kernel lookup and loading.

    SPICE has a global kernel pool, so all operations are serialized
    via an RLock to prevent concurrent furnsh/str2et/spkw09 calls from
    corrupting state.
    """

    def __init__(self, kernel_dir: Path | str | None = None):
        self._lock = threading.RLock()
        self._loaded_kernels: set[str] = set()
        self._generic_loaded = False

        if kernel_dir is not None:
            self._kernel_dir = Path(kernel_dir)
        else:
            base = os.environ.get("COSMOPACK_KERNEL_DIR")
            if base:
                self._kernel_dir = Path(base)
            else:
                self._kernel_dir = Path.home() / ".cosmopack" / "kernels"

    @property
    def lock(self) -> threading.RLock:
        """Expose the lock for external callers that need SPICE thread safety."""
        return self._lock

    @property
    def kernel_dir(self) -> Path:
        return self._kernel_dir

    # ------------------------------------------------------------------
    # Lookup / download
    # ------------------------------------------------------------------

    def find_support_kernel(self, kind: str) -> Path | None:
        """Find the first support kernel of a given kind in the tree.

        Args:
            kind: One of "lsk", "pck", "spk".

        Returns:
            Path to the first matching file (sorted by name), or None.

        Raises:
            KeyError: If ``kind`` is not a known kernel kind.
        """
        if kind not in SUPPORT_KERNEL_LAYOUT:
            raise KeyError(
                f"Unknown support kernel kind '{kind}'. "
                f"Available: {', '.join(sorted(SUPPORT_KERNEL_LAYOUT))}"
            )
        subdir, patterns = SUPPORT_KERNEL_LAYOUT[kind]
        folder = self._kernel_dir / subdir
        if not folder.is_dir():
            return None
        candidates: set[Path] = set()
        for pattern in patterns:
            candidates.update(p for p in folder.glob(pattern) if p.is_file())
        if not candidates:
            return None
        return sorted(candidates)[0]

    def download_kernel(self, url: str, filename: str, subdir: str = "") -> Path:
        """Download a kernel file if not already present.

        Args:
            url: HTTP(S) URL to fetch from.
            filename: Local filename to save as.
            subdir: Sub-directory of the kernel tree to save into.

        Returns:
            Path to the local file.

        Raises:
            RuntimeError: If the download fails.
        """
        target_dir = self._kernel_dir / subdir
        target_dir.mkdir(parents=True, exist_ok=True)
        local_path = target_dir / filename
        if local_path.exists() and local_path.stat().st_size > 0:
            logger.debug("Kernel present: %s", filename)
            return local_path

        logger.info("Downloading kernel: %s", filename)
        import requests
        try:
            resp = requests.get(url, stream=True, timeout=300)
            resp.raise_for_status()
        except Exception as e:
            raise RuntimeError(f"Failed to download kernel {filename} from {url}: {e}") from e

        # Write to temp file then rename for atomicity
        tmp_path = local_path.with_suffix(".tmp")
        try:
            with open(tmp_path, "wb") as f:
                for chunk in resp.iter_content(chunk_size=1024 * 1024):
                    f.write(chunk)
            tmp_path.rename(local_path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info("Downloaded kernel: %s (%d bytes)", filename, local_path.stat().st_size)
        return local_path

    # ------------------------------------------------------------------
    # Load / unload
    # ------------------------------------------------------------------

    def load_kernel(self, path: Path | str) -> None:
        """Load a kernel into the SPICE pool (idempotent).

        Args:
            path: Path to the kernel file.
        """
        path = Path(path)
        key = str(path.resolve())
        with self._lock:
            if key in self._loaded_kernels:
                return
            spice.furnsh(key)
            self._loaded_kernels.add(key)
            logger.debug("Loaded kernel: %s", path.name)

    def unload_kernel(self, path: Path | str) -> None:
        """Remove a kernel from the SPICE pool if this manager loaded it."""
        key = str(Path(path).resolve())
        with self._lock:
            if key not in self._loaded_kernels:
                return
            spice.unload(key)
            self._loaded_kernels.discard(key)
            logger.debug("Unloaded kernel: %s", Path(path).name)

    def unload_all(self) -> None:
        """Unload all kernels and clear state."""
        with self._lock:
            spice.kclear()
            self._loaded_kernels.clear()
            self._generic_loaded = False
            logger.info("Unloaded all SPICE kernels")

    def is_loaded(self, path: Path | str) -> bool:
        with self._lock:
            return str(Path(path).resolve()) in self._loaded_kernels

    def list_loaded(self) -> list[str]:
        """Return list of currently loaded kernel file names."""
        with self._lock:
            return [Path(k).name for k in sorted(self._loaded_kernels)]

    # ------------------------------------------------------------------
    # High-level ensure methods
    # ------------------------------------------------------------------

    def ensure_leapseconds(self, allow_download: bool = True) -> Path:
        """Locate (or download) and load the leap-second kernel.

        Args:
            allow_download: Fetch naif0012.tls from NAIF when the tree has
                no LSK.

        Returns:
            Path of the loaded LSK.

        Raises:
            FileNotFoundError: If no LSK is available locally and
                downloading is disabled.
        """
        path = self.find_support_kernel("lsk")
        if path is None:
            if not allow_download:
                raise FileNotFoundError(
                    f"No leap-second kernel (*.tls) found in {self._kernel_dir / 'lsk'}"
                )
            path = self.download_kernel(LEAPSECONDS_URL, LEAPSECONDS_FILE, subdir="lsk")
        self.load_kernel(path)
        return path

    def ensure_generic_kernels(self, allow_download: bool = True) -> None:
        """Load the generic kernels: LSK, then PCK and planetary SPK if present.

        Idempotent — safe to call multiple times.
        Loading order: LSK -> PCK -> SPK (dependencies first).
        """
        if self._generic_loaded:
            return

        with self._lock:
            self.ensure_leapseconds(allow_download=allow_download)
            for kind in ("pck", "spk"):
                path = self.find_support_kernel(kind)
                if path is None:
                    logger.debug("No %s kernel in %s", kind.upper(), self._kernel_dir)
                    continue
                self.load_kernel(path)
            self._generic_loaded = True

        logger.info("Generic kernels loaded from %s", self._kernel_dir)
