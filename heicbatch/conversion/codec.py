"""Pillow/pillow-heif codec gateway: probe, per-thread session and single-file conversion."""
import io
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from heicbatch.conversion.errors import CodecSessionError, CorruptInputError
from heicbatch.conversion.models import TargetFormat

logger = logging.getLogger("heicbatch.codec")

register_heif_opener()

# Pillow format names per target
PILLOW_FORMATS = {
    TargetFormat.HEIC: "HEIF",
    TargetFormat.JPEG: "JPEG",
}


class CodecGateway:
    """Decode one source image and encode it to a staging path in the target format."""

    def __init__(self):
        self._local = threading.local()

    def probe_availability(self) -> bool:
        """Return True if a HEIF frame can be encoded on this system."""
        try:
            buf = io.BytesIO()
            Image.new("RGB", (16, 16)).save(buf, format=PILLOW_FORMATS[TargetFormat.HEIC])
            return buf.tell() > 0
        except Exception as e:
            logger.warning("HEIF encoder probe failed: %s", e)
            return False

    def init_thread_session(self) -> None:
        if getattr(self._local, "active", False):
            raise CodecSessionError("codec session already active on this thread")
        self._local.active = True
        logger.debug("Codec session opened on %s", threading.current_thread().name)

    def release_thread_session(self) -> None:
        if getattr(self._local, "active", False):
            logger.debug("Codec session released on %s", threading.current_thread().name)
        self._local.active = False

    @contextmanager
    def thread_session(self):
        """Bracket all codec calls on the current thread. Released on every exit path."""
        try:
            self.init_thread_session()
            yield self
        finally:
            self.release_thread_session()

    @staticmethod
    def _decode(source_path: Path) -> Image.Image:
        img = None
        try:
            img = Image.open(source_path)
            img.load()
            return img
        except (UnidentifiedImageError, SyntaxError, Image.DecompressionBombError) as e:
            if img is not None:
                img.close()
            raise CorruptInputError(f"cannot decode {Path(source_path).name}: {e}") from e
        except OSError as e:
            if img is not None:
                img.close()
            # Pillow reports truncated or malformed data as OSError without an errno
            if e.errno is None:
                raise CorruptInputError(f"cannot decode {Path(source_path).name}: {e}") from e
            raise

    @staticmethod
    def _prepare(img: Image.Image, target: TargetFormat) -> Image.Image:
        if target == TargetFormat.JPEG:
            return img if img.mode in ("RGB", "L") else img.convert("RGB")
        if img.mode in ("RGB", "RGBA"):
            return img
        has_alpha = "A" in img.getbands() or "transparency" in img.info
        return img.convert("RGBA" if has_alpha else "RGB")

    def convert(
        self,
        source_path: Path,
        staging_path: Path,
        target: TargetFormat,
        quality: Optional[float] = None,
    ) -> None:
        """Convert source_path into staging_path. Never touches any other output path.

        quality is a hint in [0, 1]; None lets the encoder pick its default.
        """
        if not getattr(self._local, "active", False):
            raise CodecSessionError("convert() called outside a codec session")
        with self._decode(source_path) as img:
            out_img = self._prepare(img, target)
            save_kw: dict = {"format": PILLOW_FORMATS[target]}
            if quality is not None:
                save_kw["quality"] = int(round(quality * 100))
            exif = img.info.get("exif")
            if exif:
                save_kw["exif"] = exif
            out_img.save(str(staging_path), **save_kw)
        logger.debug("Encoded %s -> %s", Path(source_path).name, Path(staging_path).name)
