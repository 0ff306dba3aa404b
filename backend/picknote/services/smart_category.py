"""
智能品类识别 + 店内码标准化

品类识别按关键词加权打分：
- 每个品类累加名称中命中的关键词权重
- 同一品类命中多个关键词时，得分乘以 1 + 0.2 × (命中数 - 1)
- 得分最高的品类胜出，得分相同时先声明的品类优先
- 全部为 0 时归为「其他」
"""

import re
from typing import Dict, Tuple

from picknote.models.product import DEFAULT_CATEGORY

MULTI_MATCH_BONUS = 0.2

# 品类关键词权重表（顺序即优先级）
CATEGORY_KEYWORDS: Tuple[Tuple[str, Dict[str, float]], ...] = (
    ("玩具", {
        "盲盒": 3.0,
        "抽赏": 3.0,
        "手办": 3.0,
        "乐高": 3.0,
        "扭蛋": 3.0,
        "吧噗": 3.0,
        "玩偶": 2.5,
        "公仔": 2.5,
        "拼图": 2.5,
        "挂件": 2.0,
        "模型": 2.0,
        "徽章": 2.0,
        "立牌": 2.0,
        "亚克力": 1.5,
    }),
    ("茶叶", {
        "茶叶": 3.0,
        "龙井": 3.0,
        "岩茶": 3.0,
        "红茶": 2.5,
        "白茶": 2.5,
        "绿茶": 2.5,
        "普洱": 2.5,
        "乌龙": 2.5,
        "茶礼": 2.0,
        "茶": 1.0,
    }),
    ("燕窝", {
        "燕窝": 3.0,
        "即食燕窝": 1.0,
        "干燕窝": 1.0,
        "鲜炖燕窝": 1.0,
        "燕盏": 2.5,
    }),
    ("补品", {
        "陈皮": 3.0,
        "海参": 3.0,
        "冬虫夏草": 3.0,
        "花胶": 3.0,
        "阿胶": 3.0,
        "鹿茸": 3.0,
        "人参": 2.5,
        "石斛": 2.5,
        "虫草": 2.0,
        "枸杞": 2.0,
    }),
    ("酒烟", {
        "白酒": 3.0,
        "红酒": 3.0,
        "香烟": 3.0,
        "茅台": 3.0,
        "五粮液": 3.0,
        "酒": 1.5,
        "烟": 1.5,
    }),
    ("食品", {
        "饼干": 2.0,
        "零食": 2.0,
        "糕点": 2.0,
        "坚果": 2.0,
        "特产": 1.5,
    }),
)

_PRODUCT_CODE_PATTERN = re.compile(r"([A-Z]+)([0-9]+)")


def score_category(name: str, keywords: Dict[str, float]) -> float:
    """计算名称在某个品类下的得分"""
    score = 0.0
    matched = 0
    for keyword, weight in keywords.items():
        if keyword in name:
            score += weight
            matched += 1
    if matched > 1:
        score *= 1 + MULTI_MATCH_BONUS * (matched - 1)
    return score


def guess_category(name: str) -> str:
    """根据货品名称猜测品类"""
    if not name:
        return DEFAULT_CATEGORY

    best_category = DEFAULT_CATEGORY
    best_score = 0.0
    for category, keywords in CATEGORY_KEYWORDS:
        score = score_category(name, keywords)
        if score > best_score:
            best_category = category
            best_score = score

    return best_category


def normalize_product_code(code: str) -> str:
    """
    标准化店内码
    处理 B3 -> B03, c1 -> C01 等情况，其他格式只做去空格和大写
    """
    if not code:
        return ""

    clean_code = code.strip().upper()

    match = _PRODUCT_CODE_PATTERN.fullmatch(clean_code)
    if match:
        prefix, num = match.groups()
        # 数字只有一位时前面补0
        if len(num) == 1:
            return f"{prefix}0{num}"

    return clean_code
