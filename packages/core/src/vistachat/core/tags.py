"""Tag Extractor -- 从模型描述文本中启发式提取结构化标签

所有规则为固定关键词组 + 大小写不敏感正则，纯函数、无状态。
同一文本多次提取得到完全一致的 MetaTags（含列表顺序），
规则更新后可以安全地对历史消息重新计算。
"""

import re

from .models.enums import TimeOfDay
from .models.meta import MetaTags

# 模型/降级回答中表示"不支持视觉"的标记
UNSUPPORTED_MARKER = "does not support"

# 颜色族最多保留数量
MAX_COLORS = 5


def _words(*keywords: str) -> re.Pattern[str]:
    """构造单词边界匹配的关键词正则，允许复数后缀"""
    alternation = "|".join(keywords)
    return re.compile(rf"\b(?:{alternation})(?:s|es)?\b", re.IGNORECASE)


# 布尔标记：字段名 -> 关键词组
_FLAG_PATTERNS: dict[str, re.Pattern[str]] = {
    # 内容
    "has_text": _words(
        "text", "writing", "word", "letter", "sign", "label", "caption", "symbol"
    ),
    "has_people": _words(
        "person", "people", "man", "men", "woman", "women", "child", "children",
        "face", "human", "person's",
    ),
    "has_animals": _words(
        "animal", "dog", "cat", "bird", "pet", "wildlife", "creature", "mammal"
    ),
    "has_food": _words(
        "food", "meal", "dish", "fruit", "vegetable", "drink", "beverage"
    ),
    # 场景
    "is_nature": _words(
        "nature", "outdoor", "sky", "skies", "cloud", "tree", "plant", "mountain",
        "water", "river", "forest", "field",
    ),
    "is_urban": _words(
        "building", "city", "cities", "street", "road", "urban", "architecture",
        "vehicle", "car", "traffic",
    ),
    "is_indoor": _words(
        "room", "indoor", "wall", "furniture", "ceiling", "interior", "inside",
        "home", "office",
    ),
    # 风格
    "is_art": _words(
        "painting", "art", "drawing", "illustration", "design", "creative",
        "artistic", "sketch",
    ),
    "is_photo": _words(
        "photo", "photograph", "picture", "image", "camera", "shot", "photographic"
    ),
    "is_modern": _words("modern", "contemporary", "recent", "current", "new"),
    "is_vintage": _words(
        "vintage", "old", "antique", "historical", "retro", "classic"
    ),
    "is_abstract": _words(
        "abstract", "pattern", "texture", "shape", "form", "geometric"
    ),
}

# 色板：顺序即输出顺序
_COLOR_PATTERNS: dict[str, re.Pattern[str]] = {
    "red": _words(
        "red", "scarlet", "crimson", "ruby", "burgundy", "maroon", "vermilion"
    ),
    "blue": _words(
        "blue", "azure", "navy", "cyan", "sapphire", "cobalt", "cerulean", "teal",
        "turquoise",
    ),
    "green": _words(
        "green", "emerald", "lime", "olive", "forest", "mint", "sage", "chartreuse"
    ),
    "yellow": _words(
        "yellow", "gold", "golden", "amber", "lemon", "mustard", "saffron", "canary"
    ),
    "orange": _words(
        "orange", "tangerine", "peach", "amber", "rust", "pumpkin", "coral"
    ),
    "purple": _words(
        "purple", "violet", "lavender", "mauve", "lilac", "plum", "magenta", "indigo"
    ),
    "pink": _words("pink", "rose", "magenta", "salmon", "fuchsia", "blush"),
    "brown": _words(
        "brown", "tan", "beige", "chocolate", "copper", "umber", "taupe", "khaki"
    ),
    "black": _words("black", "ebony", "charcoal", "onyx", "jet", "raven"),
    "white": _words(
        "white", "ivory", "cream", "pearl", "snow", "alabaster", "eggshell"
    ),
    "gray": _words("gray", "grey", "silver", "ash", "slate", "smoke", "gunmetal"),
}

# 氛围分类：顺序即输出顺序
_MOOD_PATTERNS: dict[str, re.Pattern[str]] = {
    "bright": _words(
        "bright", "sunny", "vibrant", "colorful", "cheerful", "happy", "joyful",
        "uplifting",
    ),
    "calm": _words(
        "calm", "peaceful", "serene", "tranquil", "relaxing", "gentle", "quiet"
    ),
    "dark": _words(
        "dark", "gloomy", "moody", "ominous", "sad", "melancholy", "brooding",
        "somber",
    ),
    "energetic": _words(
        "energetic", "dynamic", "active", "lively", "busy", "chaotic", "vibrant"
    ),
    "mysterious": _words(
        "mysterious", "enigmatic", "mystical", "ethereal", "dreamy", "surreal"
    ),
    "warm": _words("warm", "cozy", "inviting", "comfortable", "homely", "snug"),
    "cold": _words(
        "cold", "chilly", "frosty", "icy", "bleak", "barren", "sterile"
    ),
}

# 时间段按顺序检查，首个命中即返回
_TIME_OF_DAY_PATTERNS: list[tuple[TimeOfDay, re.Pattern[str]]] = [
    (
        TimeOfDay.MORNING,
        re.compile(
            r"\b(?:sunrise|dawn|morning)\b|\bearly\b.*\bday\b|\bsun\b.*\brising\b",
            re.IGNORECASE,
        ),
    ),
    (
        TimeOfDay.AFTERNOON,
        re.compile(r"\b(?:midday|noon|afternoon)\b|\bhigh\b.*\bnoon\b", re.IGNORECASE),
    ),
    (
        TimeOfDay.EVENING,
        re.compile(r"\b(?:sunset|dusk|evening|twilight|nightfall)\b", re.IGNORECASE),
    ),
    (
        TimeOfDay.NIGHT,
        re.compile(
            r"\b(?:night|midnight|stars|moon|moonlight|nocturnal)\b|\bdark\b.*\bsky\b",
            re.IGNORECASE,
        ),
    ),
]

_EMOJI_PATTERN = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF]"
)


def extract_colors(text: str) -> list[str]:
    """按色板顺序返回命中的颜色族（非文本出现顺序），最多 MAX_COLORS 个"""
    colors = [name for name, pattern in _COLOR_PATTERNS.items() if pattern.search(text)]
    return colors[:MAX_COLORS]


def extract_mood(text: str) -> list[str]:
    """返回命中的氛围分类，无命中时为 ["neutral"]"""
    moods = [name for name, pattern in _MOOD_PATTERNS.items() if pattern.search(text)]
    return moods or ["neutral"]


def extract_time_of_day(text: str) -> TimeOfDay:
    """按 morning -> afternoon -> evening -> night 顺序返回首个命中"""
    for time_of_day, pattern in _TIME_OF_DAY_PATTERNS:
        if pattern.search(text):
            return time_of_day
    return TimeOfDay.UNKNOWN


def extract_tags(text: str, keywords: list[str] | None = None) -> MetaTags:
    """从描述文本中提取 MetaTags

    Args:
        text: 模型返回的描述文本（已去掉 TAGS: 行）
        keywords: 模型显式给出的标签列表（可选，原样保留顺序）

    Returns:
        MetaTags 实例
    """
    flags = {name: bool(pattern.search(text)) for name, pattern in _FLAG_PATTERNS.items()}
    return MetaTags(
        **flags,
        has_emojis=bool(_EMOJI_PATTERN.search(text)),
        colors=extract_colors(text),
        mood=extract_mood(text),
        time_of_day=extract_time_of_day(text),
        word_count=len(text.split()),
        vision_supported=UNSUPPORTED_MARKER not in text.lower(),
        keywords=list(keywords or []),
    )


def parse_keywords(raw: str) -> list[str]:
    """解析逗号分隔的标签串，去空白、去空项、保序去重"""
    seen: list[str] = []
    for part in raw.split(","):
        tag = part.strip().strip(".").strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen
