import asyncio
import logging

logger = logging.getLogger(__name__)

LOSSY = "lossy"
LOSSLESS = "lossless"

LOSSY_LEVEL = 80
OPTIMIZATION_LEVEL = 3


class UnsupportedCompressionError(ValueError):
    pass


class CompressionError(Exception):
    pass


def select_backend(compression_type: str) -> list[str]:
    """gifsicle options for a compression mode"""
    if compression_type == LOSSY:
        return [f"-O{OPTIMIZATION_LEVEL}", f"--lossy={LOSSY_LEVEL}"]
    if compression_type == LOSSLESS:
        return [f"-O{OPTIMIZATION_LEVEL}"]
    raise UnsupportedCompressionError(f"Unknown compression type: {compression_type!r}")


async def run_gifsicle(cmd: list[str], gif_buffer: bytes) -> bytes:
    """Pipe a gif through gifsicle and return what it writes to stdout."""
    logger.debug(f"running {cmd}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CompressionError(f"gifsicle not found: {cmd[0]}") from e

    stdout, stderr = await proc.communicate(gif_buffer)
    if proc.returncode != 0:
        raise CompressionError(
            f"gifsicle exited with {proc.returncode}: {stderr.decode(errors='replace').strip()}"
        )
    return stdout


async def compress_gif(
    gif_buffer: bytes, compression_type: str, gifsicle_path: str = "gifsicle"
) -> bytes:
    options = select_backend(compression_type)
    logger.info(f"Compressing gif ({compression_type})")
    compressed = await run_gifsicle([gifsicle_path, *options], gif_buffer)
    logger.info(
        f"{compression_type.capitalize()} compression finished: "
        f"{len(gif_buffer)} -> {len(compressed)} bytes"
    )
    return compressed
