import math
from typing import Literal, Sequence

FaceBandStatus = Literal["good", "ok", "off"]
BodyBandStatus = Literal["ideal", "good", "moderate", "off"]

# 理想値からの乖離率による段階判定の境界（±5% / ±10% / ±15%）
STATUS_CUT_POINTS: tuple[float, float, float] = (0.05, 0.10, 0.15)


def clamp(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def round_to(value: float, decimals: int) -> float:
    return round(value, decimals)


def sigmoid(x: float) -> float:
    """オーバーフローしないシグモイド関数"""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def ratio_score(value: float, ideal: float, sigma: float) -> float:
    """
    比率を理想値に対する対数正規型の近さスコアに変換する。

    score = exp(-((ln(value / ideal)) / sigma)^2)

    対数空間で対称（理想の2倍と1/2倍は同じ減点）で、理想値ちょうどで 1.0 になる。

    Args:
        value (float): 実測比率
        ideal (float): 理想値
        sigma (float): 許容幅

    Returns:
        float: 0.0〜1.0 のスコア。value か ideal が正でない場合は 0.0
    """
    if value <= 0 or ideal <= 0 or sigma <= 0:
        return 0.0
    log_distance = math.log(value / ideal) / sigma
    return math.exp(-(log_distance * log_distance))


def deviation_ratio(value: float, ideal: float) -> float:
    """理想値からの絶対乖離率 |value / ideal - 1|"""
    if ideal <= 0:
        return math.inf
    return abs(value / ideal - 1.0)


def face_ratio_status(value: float, ideal: float) -> FaceBandStatus:
    """顔の比率ステータス（good / ok / off）"""
    deviation = deviation_ratio(value, ideal)
    if deviation <= STATUS_CUT_POINTS[0]:
        return "good"
    if deviation <= STATUS_CUT_POINTS[1]:
        return "ok"
    return "off"


def body_ratio_status(value: float, ideal: float) -> BodyBandStatus:
    """体の比率ステータス（ideal / good / moderate / off）"""
    deviation = deviation_ratio(value, ideal)
    if deviation <= STATUS_CUT_POINTS[0]:
        return "ideal"
    if deviation <= STATUS_CUT_POINTS[1]:
        return "good"
    if deviation <= STATUS_CUT_POINTS[2]:
        return "moderate"
    return "off"


def weighted_mean(
    scores: Sequence[float],
    weights: Sequence[float],
    confidences: Sequence[float] | None = None,
) -> float:
    """
    信頼度付き加重平均 Σ(s·w·c) / Σ(w·c) を計算する。

    Args:
        scores: スコアのリスト
        weights: 重みのリスト
        confidences: 信頼度のリスト（省略時はすべて 1.0）

    Returns:
        float: 加重平均。分母が 0 の場合は 0.0
    """
    if len(scores) != len(weights):
        raise ValueError("scores と weights の長さが一致しません")
    if confidences is None:
        confidences = [1.0] * len(scores)
    elif len(confidences) != len(scores):
        raise ValueError("scores と confidences の長さが一致しません")

    numerator = 0.0
    denominator = 0.0
    for score, weight, confidence in zip(scores, weights, confidences):
        numerator += score * weight * confidence
        denominator += weight * confidence
    if denominator == 0:
        return 0.0
    return numerator / denominator


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def iqr(values: Sequence[float]) -> float:
    """四分位範囲。4件未満の場合は 0.0"""
    if len(values) < 4:
        return 0.0
    ordered = sorted(values)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    return q3 - q1


def stability(values: Sequence[float], expected_range: float) -> float:
    """ばらつきの小ささを 0.0〜1.0 で表す（1.0 が最も安定）"""
    if expected_range <= 0:
        return 1.0
    return 1.0 - min(iqr(values) / expected_range, 1.0)


def symmetry_score(
    left: Sequence[float],
    right: Sequence[float],
    tolerance: float,
) -> float:
    """
    左右の計測値ペアから対称性スコアを計算する。

    各ペアの差を平均値で正規化し、その平均を許容幅でガウス変換する。
    """
    if len(left) != len(right) or not left:
        return 0.0

    total_diff = 0.0
    for left_value, right_value in zip(left, right):
        average = (left_value + right_value) / 2
        if average > 0:
            total_diff += abs(left_value - right_value) / average
    average_diff = total_diff / len(left)
    return math.exp(-((average_diff / tolerance) ** 2))


def thirds_balance_score(upper: float, middle: float, lower: float) -> float:
    """顔の三分割（上・中・下）の均等さスコア"""
    total = upper + middle + lower
    if total <= 0:
        return 0.0
    ideal = 1.0 / 3.0
    average_deviation = (
        abs(upper / total - ideal)
        + abs(middle / total - ideal)
        + abs(lower / total - ideal)
    ) / 3
    return max(0.0, 1.0 - average_deviation * 3)
