import io
from dataclasses import dataclass
from typing import Literal, cast

from loguru import logger
from PIL import Image, UnidentifiedImageError

ImageFormatType = Literal["gif", "jpeg", "png", "webp"]

SUPPORTED_FORMATS: dict[str, ImageFormatType] = {
    "GIF": "gif",
    "JPEG": "jpeg",
    "MPO": "jpeg",  # 一部のスマートフォンの JPEG
    "PNG": "png",
    "WEBP": "webp",
}


@dataclass(frozen=True)
class ImageInfo:
    """画像の基本情報"""
    format: ImageFormatType
    width: int
    height: int

    @property
    def short_side(self) -> int:
        return min(self.width, self.height)


class ImageService:
    """アップロード画像の検査を行うサービス"""

    def bytes_to_pil(self, image_data: bytes) -> Image.Image:
        """バイナリデータをPILの画像に変換する"""
        return Image.open(io.BytesIO(image_data))

    def inspect(self, image_data: bytes) -> ImageInfo:
        """
        画像のフォーマットと解像度を取得する。

        解像度は計測プロバイダの自己申告ではなく、画像そのものから求める。

        Args:
            image_data (bytes): 画像データ

        Returns:
            ImageInfo: フォーマット・幅・高さ

        Raises:
            ValueError: 画像として読み込めない、または未対応のフォーマットの場合
        """
        try:
            image = self.bytes_to_pil(image_data)
        except UnidentifiedImageError as e:
            logger.warning(f"画像の読み込みに失敗: {e}")
            raise ValueError("画像として読み込めません") from e

        image_format = SUPPORTED_FORMATS.get(cast(str, image.format or ""))
        if image_format is None:
            raise ValueError(f"未対応の画像フォーマットです: {image.format}")

        width, height = image.size
        return ImageInfo(format=image_format, width=width, height=height)


def get_image_service() -> "ImageService":
    """
    ImageServiceのインスタンスを取得する
    """
    return ImageService()
