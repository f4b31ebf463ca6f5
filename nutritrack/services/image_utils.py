import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("nutritrack.image")


def compress_image(image_bytes: bytes, max_width: int = 800, quality: int = 70) -> bytes:
    """按比例缩放到不超过 max_width 并转为 JPEG。

    宽度本就不超过 max_width 的图片原样返回。
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        width, height = img.size
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"无法识别的图片数据: {e}") from e

    if width <= max_width:
        logger.debug("图片无需压缩: %.1fKB (%dx%d)", len(image_bytes) / 1024, width, height)
        return image_bytes

    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")
    new_height = int(height * (max_width / width))
    img = img.resize((max_width, new_height), Image.Resampling.LANCZOS)

    output = io.BytesIO()
    img.save(output, format="JPEG", quality=quality)
    resized = output.getvalue()
    logger.info(
        "图片已压缩: %.1fKB -> %.1fKB (%dx%d -> %dx%d)",
        len(image_bytes) / 1024,
        len(resized) / 1024,
        width,
        height,
        max_width,
        new_height,
    )
    return resized


def to_data_url(image_bytes: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(image_bytes).decode('utf-8')}"


def compress_to_data_url(image_bytes: bytes, max_width: int = 800, quality: int = 70) -> str:
    """压缩并编码为可直接存入记录的 data URL。"""
    compressed = compress_image(image_bytes, max_width=max_width, quality=quality)
    if compressed is image_bytes:
        mime = Image.MIME.get(Image.open(io.BytesIO(image_bytes)).format or "", "image/jpeg")
        return to_data_url(image_bytes, mime)
    return to_data_url(compressed)
