"""ctypes binding to a compiled libzstd.

Only the primitives the benchmarks call are bound.  The frame API
(``ZSTD_compress`` and friends) is stock libzstd; the literals block API
(``ZSTD_forEachLiteralsBlock``, ``ZSTD_compressLiteralsBlock``,
``ZSTD_decompressLiteralsBlock``) comes from the shim that
zstdbench.build links into every library.  Symbols are resolved on first
use, so loading any other libzstd still serves the frame benchmarks and
raises ZstdError naming the symbol for the literals ones.
"""

from __future__ import annotations

import ctypes
import enum
from pathlib import Path
from typing import Any, Callable, Iterator, NamedTuple

from zstdbench.logging import get_logger

log = get_logger("bindings")

_size_t = ctypes.c_size_t
_void_p = ctypes.c_void_p
_u8_p = ctypes.POINTER(ctypes.c_ubyte)

# int callback(void* opaque, u8 const* cLits, size_t cSize,
#              u8 const* dLits, size_t dSize, int type)
_LITERALS_CALLBACK = ctypes.CFUNCTYPE(
    ctypes.c_int, _void_p, _u8_p, _size_t, _u8_p, _size_t, ctypes.c_int
)

_ITERATION_CONTINUE = 0

ZSTD_CONTENTSIZE_UNKNOWN = (1 << 64) - 1
ZSTD_CONTENTSIZE_ERROR = (1 << 64) - 2


class ZstdError(RuntimeError):
    """A libzstd call failed or a required symbol is missing."""


class LiteralsBlockType(enum.IntEnum):
    RAW = 0
    RLE = 1
    COMPRESSED = 2
    REPEAT = 3


class LiteralsBlock(NamedTuple):
    """One literals section of a compressed block."""

    compressed: bytes
    decompressed: bytes
    block_type: LiteralsBlockType


# symbol -> (restype, argtypes)
_SIGNATURES: dict[str, tuple[Any, list[Any]]] = {
    "ZSTD_versionString": (ctypes.c_char_p, []),
    "ZSTD_isError": (ctypes.c_uint, [_size_t]),
    "ZSTD_getErrorName": (ctypes.c_char_p, [_size_t]),
    "ZSTD_compressBound": (_size_t, [_size_t]),
    "ZSTD_compress": (_size_t, [_void_p, _size_t, _void_p, _size_t, ctypes.c_int]),
    "ZSTD_decompress": (_size_t, [_void_p, _size_t, _void_p, _size_t]),
    "ZSTD_getFrameContentSize": (ctypes.c_ulonglong, [_void_p, _size_t]),
    "ZSTD_createDCtx": (_void_p, []),
    "ZSTD_freeDCtx": (_size_t, [_void_p]),
    "ZSTD_decompressBegin": (_size_t, [_void_p]),
    "ZSTD_forEachLiteralsBlock": (_size_t, [_void_p, _size_t, _LITERALS_CALLBACK, _void_p]),
    "ZSTD_CompressLiteralsBlockContext_create": (_void_p, []),
    "ZSTD_CompressLiteralsBlockContext_free": (None, [_void_p]),
    "ZSTD_compressLiteralsBlock": (_size_t, [_void_p, _void_p, _size_t, ctypes.c_int]),
    "ZSTD_decompressLiteralsBlock": (_size_t, [_void_p, _void_p, _size_t]),
}


class ZstdLibrary:
    """A libzstd shared object loaded from *path*."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            self._lib = ctypes.CDLL(str(self.path))
        except OSError as exc:
            raise ZstdError(f"Cannot load {self.path}: {exc}") from exc
        self._functions: dict[str, Callable[..., Any]] = {}

    def _fn(self, name: str) -> Callable[..., Any]:
        fn = self._functions.get(name)
        if fn is None:
            try:
                fn = getattr(self._lib, name)
            except AttributeError as exc:
                raise ZstdError(f"{self.path} does not export {name}") from exc
            fn.restype, fn.argtypes = _SIGNATURES[name]
            self._functions[name] = fn
        return fn

    def _check(self, result: int, what: str) -> int:
        if self._fn("ZSTD_isError")(result):
            name = self._fn("ZSTD_getErrorName")(result).decode()
            raise ZstdError(f"{what} failed: {name}")
        return result

    @property
    def version(self) -> str:
        return self._fn("ZSTD_versionString")().decode()

    # -- Frame API ----------------------------------------------------------

    def compress_bound(self, size: int) -> int:
        return self._fn("ZSTD_compressBound")(size)

    def compress_into(self, dst: ctypes.Array[ctypes.c_char], src: bytes, level: int) -> int:
        """Compress *src* into the preallocated buffer *dst*; return the size."""
        csize = self._fn("ZSTD_compress")(dst, len(dst), src, len(src), level)
        return self._check(csize, "ZSTD_compress")

    def compress(self, src: bytes, level: int) -> bytes:
        dst = ctypes.create_string_buffer(self.compress_bound(len(src)))
        csize = self.compress_into(dst, src, level)
        return dst.raw[:csize]

    def frame_content_size(self, frame: bytes) -> int:
        size = self._fn("ZSTD_getFrameContentSize")(frame, len(frame))
        if size in (ZSTD_CONTENTSIZE_ERROR, ZSTD_CONTENTSIZE_UNKNOWN):
            raise ZstdError("Frame does not record its content size")
        return size

    def decompress_into(self, dst: ctypes.Array[ctypes.c_char], frame: bytes) -> int:
        """Decompress *frame* into *dst*; return the decompressed size."""
        dsize = self._fn("ZSTD_decompress")(dst, len(dst), frame, len(frame))
        return self._check(dsize, "ZSTD_decompress")

    def decompress(self, frame: bytes) -> bytes:
        dst = ctypes.create_string_buffer(max(self.frame_content_size(frame), 1))
        dsize = self.decompress_into(dst, frame)
        return dst.raw[:dsize]

    # -- Literals block API -------------------------------------------------

    def iter_literals_blocks(self, frame: bytes) -> Iterator[LiteralsBlock]:
        """Yield the literals section of every compressed block of *frame*.

        Each call walks the frame from the start.
        """
        blocks: list[LiteralsBlock] = []

        def on_block(
            _opaque: Any, c_ptr: Any, c_size: int, d_ptr: Any, d_size: int, kind: int
        ) -> int:
            blocks.append(
                LiteralsBlock(
                    compressed=ctypes.string_at(c_ptr, c_size),
                    decompressed=ctypes.string_at(d_ptr, d_size),
                    block_type=LiteralsBlockType(kind),
                )
            )
            return _ITERATION_CONTINUE

        callback = _LITERALS_CALLBACK(on_block)
        result = self._fn("ZSTD_forEachLiteralsBlock")(frame, len(frame), callback, None)
        self._check(result, "ZSTD_forEachLiteralsBlock")
        yield from blocks

    def literals_compressor(self) -> LiteralsCompressor:
        return LiteralsCompressor(self)

    def literals_decompressor(self) -> LiteralsDecompressor:
        return LiteralsDecompressor(self)


class LiteralsCompressor:
    """Context compressing literals sections, reusing Huffman tables."""

    def __init__(self, library: ZstdLibrary) -> None:
        self._library = library
        self._ctx = library._fn("ZSTD_CompressLiteralsBlockContext_create")()
        if not self._ctx:
            raise ZstdError("Cannot allocate a literals compression context")

    def compress(self, literals: bytes) -> int:
        """Compress *literals*; return the compressed section size."""
        csize = self._library._fn("ZSTD_compressLiteralsBlock")(
            self._ctx, literals, len(literals), 0
        )
        return self._library._check(csize, "ZSTD_compressLiteralsBlock")

    def close(self) -> None:
        if self._ctx:
            self._library._fn("ZSTD_CompressLiteralsBlockContext_free")(self._ctx)
            self._ctx = None

    def __enter__(self) -> LiteralsCompressor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class LiteralsDecompressor:
    """Decompression context decoding standalone literals sections."""

    def __init__(self, library: ZstdLibrary) -> None:
        self._library = library
        self._dctx = library._fn("ZSTD_createDCtx")()
        if not self._dctx:
            raise ZstdError("Cannot allocate a decompression context")
        library._check(library._fn("ZSTD_decompressBegin")(self._dctx), "ZSTD_decompressBegin")

    def decompress(self, literals: bytes) -> int:
        """Decode a literals section; return the number of literals."""
        dsize = self._library._fn("ZSTD_decompressLiteralsBlock")(
            self._dctx, literals, len(literals)
        )
        return self._library._check(dsize, "ZSTD_decompressLiteralsBlock")

    def close(self) -> None:
        if self._dctx:
            self._library._fn("ZSTD_freeDCtx")(self._dctx)
            self._dctx = None

    def __enter__(self) -> LiteralsDecompressor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
