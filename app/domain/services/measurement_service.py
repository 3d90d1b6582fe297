import os
import time as time_module
from typing import Final, Literal

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError
from types_aiobotocore_bedrock_runtime.type_defs import (
    ContentBlockOutputTypeDef, ContentBlockTypeDef, ConverseResponseTypeDef,
    ImageBlockTypeDef, ImageSourceTypeDef, InferenceConfigurationTypeDef,
    MessageTypeDef, SystemContentBlockTypeDef, ToolChoiceTypeDef,
    ToolConfigurationTypeDef, ToolTypeDef)

from app.domain.models.measurement import (
    MEASUREMENT_ADAPTER,
    BodyMeasurement,
    FaceMeasurement,
)
from app.domain.services.image_service import ImageFormatType
from app.domain.utils.seeded_random import JitterParams

load_dotenv()

MeasurementDomain = Literal["face", "body"]

TOOL_NAME: Final[str] = "photo_measurements"

SYSTEM_PROMPT: Final[str] = (
    "You are a photogrammetry assistant. You measure head pose, image quality, "
    "subject visibility and landmark distances in a single photo of a person.\n"
    "You never score attractiveness. You only report measurements.\n"
    "Report every value in the units described by the tool schema."
)

USER_PROMPT_TEMPLATE: Final[str] = (
    "Measure this photo. The photo is expected to be a {expected_view} photo.\n"
    "\n"
    "## Rules\n"
    "- domain must be \"{domain}\".\n"
    "- pose angles are in degrees; yaw 0 means facing the camera, ±90 means true profile.\n"
    "- quality.blur is 1.0 for perfectly sharp, brightness 0.0 black to 1.0 blown out, "
    "filter_suspected is the likelihood of a beauty filter.\n"
    "- subject.occlusion_score is the fraction of key features that are hidden.\n"
    "{measurement_rule}"
    "- For each ratio you measure, also repeat the measurement under each of the following "
    "small perturbations and report them in ratio_samples keyed by ratio name:\n"
    "{jitter_plan}\n"
    "\n"
    "Return the result with the {tool_name} tool."
)

FACE_MEASUREMENT_RULE: Final[str] = (
    "- Fill landmarks with distances between facial landmarks in pixels.\n"
)
BODY_MEASUREMENT_RULE: Final[str] = (
    "- Fill measurements with body widths and heights in pixels, posture angles in degrees "
    "(only when visible from the side), presentation, clothing fit, leanness_estimate "
    "and body_type_probabilities.\n"
)
VALIDATION_ONLY_RULE: Final[str] = (
    "- Only pose, quality and subject are required; omit landmark measurements.\n"
)

DEFAULT_MODEL_ID: Final[str] = "apac.anthropic.claude-sonnet-4-5-20250929-v1:0"


class MeasurementError(Exception):
    """計測プロバイダの呼び出し・レスポンス解析に失敗した場合の例外"""


def _build_tool(domain: MeasurementDomain) -> ToolTypeDef:
    model = FaceMeasurement if domain == "face" else BodyMeasurement
    return {
        "toolSpec": {
            "name": TOOL_NAME,
            "description": "写真1枚の姿勢・品質・可視性・ランドマーク計測結果を返却する",
            "inputSchema": {"json": model.model_json_schema()},
        }
    }


def _format_jitter_plan(jitter: list[JitterParams]) -> str:
    lines = [
        f"  {i}: rotate {p.rotation:+.2f}deg, scale {p.scale:.3f}, "
        f"crop ({p.crop_x:+.3f}, {p.crop_y:+.3f}), brightness {p.brightness:+.3f}"
        for i, p in enumerate(jitter)
    ]
    return "\n".join(lines) if lines else "  (none)"


class MeasurementService:
    """AWS Bedrock Converse API を使用した写真計測サービス"""

    region_name: str
    model_id: str

    def __init__(
        self,
        region_name: str | None = None,
        model_id: str | None = None,
    ) -> None:
        self.region_name = region_name or os.getenv(
            "AWS_REGION", "ap-northeast-1"
        )
        self.model_id = model_id or os.getenv(
            "BEDROCK_MODEL_ID", DEFAULT_MODEL_ID
        )

    def build_user_prompt(
        self,
        domain: MeasurementDomain,
        expected_view: str,
        jitter: list[JitterParams],
        include_measurements: bool,
    ) -> str:
        if not include_measurements:
            measurement_rule = VALIDATION_ONLY_RULE
        elif domain == "face":
            measurement_rule = FACE_MEASUREMENT_RULE
        else:
            measurement_rule = BODY_MEASUREMENT_RULE
        return USER_PROMPT_TEMPLATE.format(
            expected_view=expected_view.replace("_", " "),
            domain=domain,
            measurement_rule=measurement_rule,
            jitter_plan=_format_jitter_plan(jitter),
            tool_name=TOOL_NAME,
        )

    async def measure(
        self,
        image_bytes: bytes,
        image_format: ImageFormatType,
        domain: MeasurementDomain,
        expected_view: str,
        jitter: list[JitterParams] | None = None,
        include_measurements: bool = True,
    ) -> FaceMeasurement | BodyMeasurement:
        """写真の計測値を取得する

        Args:
            image_bytes: 画像データのバイト列
            image_format: 画像フォーマット（"jpeg", "png", "gif", "webp"）
            domain: face / body
            expected_view: 期待するビュー（プロンプトに含める）
            jitter: 安定性サンプリング用のジッター計画
            include_measurements: ランドマーク計測まで要求するか

        Returns:
            FaceMeasurement | BodyMeasurement: ドメインごとの計測値

        Raises:
            MeasurementError: API 呼び出しまたはレスポンスの解析に失敗した場合
        """
        start_time = time_module.time()
        try:
            session = aioboto3.Session()
            async with session.client(
                "bedrock-runtime",
                region_name=self.region_name,
            ) as bedrock_client:
                system_blocks: list[SystemContentBlockTypeDef] = [
                    {"text": SYSTEM_PROMPT}
                ]
                image_source: ImageSourceTypeDef = {"bytes": image_bytes}
                image_block: ImageBlockTypeDef = {
                    "format": image_format,
                    "source": image_source,
                }
                content_block: ContentBlockTypeDef = {"image": image_block}
                text_block: ContentBlockTypeDef = {
                    "text": self.build_user_prompt(
                        domain, expected_view, jitter or [], include_measurements
                    )
                }
                messages: list[MessageTypeDef] = [
                    {
                        "role": "user",
                        "content": [content_block, text_block],
                    }
                ]
                inference_config: InferenceConfigurationTypeDef = {
                    "temperature": 0.0,
                    "maxTokens": 4096,
                }
                tool_choice: ToolChoiceTypeDef = {
                    "tool": {"name": TOOL_NAME},
                }
                tool_config: ToolConfigurationTypeDef = {
                    "tools": [_build_tool(domain)],
                    "toolChoice": tool_choice,
                }

                response: ConverseResponseTypeDef = (
                    await bedrock_client.converse(
                        modelId=self.model_id,
                        system=system_blocks,
                        messages=messages,
                        inferenceConfig=inference_config,
                        toolConfig=tool_config,
                    )
                )
        except (BotoCoreError, ClientError) as e:
            elapsed_ms = (time_module.time() - start_time) * 1000
            logger.error(
                "写真計測 Bedrock API エラー: "
                + f"{e}, elapsed={elapsed_ms:.2f}ms"
            )
            raise MeasurementError(f"Bedrock API エラー: {e}") from e

        result = self._parse_response(response, domain)
        elapsed_ms = (time_module.time() - start_time) * 1000
        logger.info(
            "写真計測完了: "
            + f"domain={domain}, "
            + f"expected_view={expected_view}, "
            + f"pose_confidence={result.pose.confidence:.2f}, "
            + f"elapsed={elapsed_ms:.2f}ms"
        )
        return result

    def _parse_response(
        self,
        response: ConverseResponseTypeDef,
        domain: MeasurementDomain,
    ) -> FaceMeasurement | BodyMeasurement:
        """Bedrock Converse API のレスポンスをパースする

        Args:
            response: Bedrock Converse API のレスポンス
            domain: 要求したドメイン

        Returns:
            FaceMeasurement | BodyMeasurement: パースされた計測値

        Raises:
            MeasurementError: toolUse がない、または形式が不正な場合
        """
        try:
            message = response["output"].get("message")
        except (KeyError, AttributeError, TypeError) as e:
            logger.error(f"Bedrock レスポンスの形式が不正です: {e}")
            raise MeasurementError("レスポンスの形式が不正です") from e
        if message is None:
            logger.warning("Bedrock レスポンスに message が含まれていません")
            raise MeasurementError("レスポンスに message が含まれていません")

        content_blocks: list[ContentBlockOutputTypeDef] = message.get("content", [])
        for block in content_blocks:
            if "toolUse" not in block:
                continue
            tool_input = block["toolUse"]["input"]
            try:
                if isinstance(tool_input, str):
                    result = MEASUREMENT_ADAPTER.validate_json(tool_input)
                else:
                    result = MEASUREMENT_ADAPTER.validate_python(tool_input)
            except ValidationError as e:
                logger.error(f"計測結果のパースに失敗: {e}")
                raise MeasurementError("計測結果の形式が不正です") from e
            if result.domain != domain:
                raise MeasurementError(
                    f"要求と異なるドメインの計測結果です: {result.domain}"
                )
            return result

        logger.warning("Bedrock レスポンスに toolUse が含まれていません")
        raise MeasurementError("レスポンスに toolUse が含まれていません")


# シングルトンパターン
_measurement_service_instance: MeasurementService | None = None


def get_measurement_service() -> MeasurementService:
    """MeasurementService のインスタンスを取得する"""
    global _measurement_service_instance
    if _measurement_service_instance is None:
        _measurement_service_instance = MeasurementService()
    return _measurement_service_instance
