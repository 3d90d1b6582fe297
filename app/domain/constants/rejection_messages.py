from typing import Final, Mapping
from types import MappingProxyType

# 検証エラーの種別
INVALID_VIEW: Final[str] = "INVALID_VIEW"
POSE_INVALID: Final[str] = "POSE_INVALID"
LOW_QUALITY: Final[str] = "LOW_QUALITY"
SUBJECT_NOT_VISIBLE: Final[str] = "SUBJECT_NOT_VISIBLE"
HEAVY_OCCLUSION: Final[str] = "HEAVY_OCCLUSION"
BEAUTY_FILTER_DETECTED: Final[str] = "BEAUTY_FILTER_DETECTED"
RESOLUTION_TOO_LOW: Final[str] = "RESOLUTION_TOO_LOW"
BLUR_DETECTED: Final[str] = "BLUR_DETECTED"

# ユーザー向けの却下メッセージ（フロントエンドでそのまま表示する）
FACE_THREE_QUARTER: Final[str] = (
    "This appears to be a 3/4 angle photo. We only accept front or side views "
    "for accurate analysis. Please retake with your face either directly facing "
    "the camera or in true profile."
)
FACE_POSE_INVALID: Final[str] = (
    "Your head position appears tilted. Please retake with a neutral head position "
    "(looking straight ahead, not tilted up/down or to the side)."
)
FACE_OCCLUDED: Final[str] = (
    "Part of your face is obscured (hair covering features, sunglasses, hand, etc.). "
    "Please retake with your full face visible."
)
BODY_OCCLUDED: Final[str] = (
    "Key body parts are obscured. Please retake with your full figure clearly visible."
)
BODY_NOT_FULL: Final[str] = (
    "Body analysis requires a full-body image showing head to feet. This image "
    "appears cropped or doesn't show your complete figure."
)
BODY_POSE_INVALID: Final[str] = (
    "Your body appears rotated. For accurate measurements, please stand with your "
    "body aligned to the expected view angle."
)
TOO_BLURRY: Final[str] = (
    "The image is too blurry for accurate analysis. Please take a clearer photo "
    "in good lighting."
)
RESOLUTION_LOW: Final[str] = (
    "The image resolution is too low. Please upload a higher quality image "
    "(minimum 256px for face/body area)."
)
POOR_LIGHTING: Final[str] = (
    "The lighting is too dark or harsh for accurate analysis. Please retake in "
    "even, natural lighting."
)
FILTER_SUSPECTED: Final[str] = (
    "This image appears to have a beauty filter applied. For accurate results, "
    "please upload an unfiltered photo."
)
QUALITY_TOO_LOW: Final[str] = (
    "Photo quality is too low for accurate analysis. Please retake in good lighting "
    "with the camera held steady."
)

# issue メッセージとエラー種別の対応
ISSUE_ERROR_TYPES: Final[Mapping[str, str]] = MappingProxyType({
    TOO_BLURRY: BLUR_DETECTED,
    RESOLUTION_LOW: RESOLUTION_TOO_LOW,
    POOR_LIGHTING: LOW_QUALITY,
    FILTER_SUSPECTED: BEAUTY_FILTER_DETECTED,
    FACE_OCCLUDED: HEAVY_OCCLUSION,
    BODY_OCCLUDED: HEAVY_OCCLUSION,
    BODY_NOT_FULL: SUBJECT_NOT_VISIBLE,
})

# 期待ビューごとの、検出ビューに応じた案内メッセージ
VIEW_MISMATCH_MESSAGES: Final[Mapping[str, Mapping[str, str]]] = MappingProxyType({
    "face_front": MappingProxyType({
        "face_side": "You uploaded a side profile, but we need a front-facing photo for this slot.",
        "unknown": "Could not determine the view angle. Please upload a clear front-facing photo.",
    }),
    "face_side": MappingProxyType({
        "face_front": "You uploaded a front-facing photo, but we need a side profile for this slot.",
        "unknown": "Could not determine the view angle. Please upload a clear side profile.",
    }),
    "body_front": MappingProxyType({
        "body_side": "You uploaded a side view, but we need a front-facing full body photo.",
        "body_back": "You uploaded a back view, but we need a front-facing full body photo.",
        "unknown": "Could not determine the body orientation. Please upload a front-facing full body photo.",
    }),
    "body_side": MappingProxyType({
        "body_front": "You uploaded a front view, but we need a side view of your body.",
        "body_back": "You uploaded a back view, but we need a side view of your body.",
        "unknown": "Could not determine the body orientation. Please upload a side view of your body.",
    }),
    "body_back": MappingProxyType({
        "body_front": "You uploaded a front view, but we need a back view of your body.",
        "body_side": "You uploaded a side view, but we need a back view of your body.",
        "unknown": "Could not determine the body orientation. Please upload a back view of your body.",
    }),
})


def view_mismatch_message(expected: str, detected: str) -> str:
    """期待ビューと検出ビューの組み合わせに応じた案内メッセージを返す"""
    message = VIEW_MISMATCH_MESSAGES.get(expected, {}).get(detected)
    if message is not None:
        return message
    return (
        f"Expected {expected.replace('_', ' ')} view, "
        f"but detected {detected.replace('_', ' ')} view."
    )
