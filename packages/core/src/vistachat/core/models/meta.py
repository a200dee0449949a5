"""MetaTags Domain Model

assistant 消息的结构化元数据，由 core.tags.extract_tags() 从描述文本推导。
同样的输入文本永远得到同样的 MetaTags（纯函数，无隐藏状态）。
"""

from pydantic import BaseModel, Field

from .enums import TimeOfDay


class MetaTags(BaseModel):
    """描述文本的启发式标签

    key 集合固定；序列化后直接存入 messages.meta_tags 列。
    """

    # 内容标记
    has_text: bool = Field(default=False, description="是否包含文字/标识")
    has_people: bool = Field(default=False, description="是否包含人物")
    has_animals: bool = Field(default=False, description="是否包含动物")
    has_food: bool = Field(default=False, description="是否包含食物")

    # 场景标记
    is_nature: bool = Field(default=False, description="自然/户外场景")
    is_urban: bool = Field(default=False, description="城市场景")
    is_indoor: bool = Field(default=False, description="室内场景")

    # 风格标记
    is_art: bool = Field(default=False, description="绘画/插画类")
    is_photo: bool = Field(default=False, description="照片类")
    is_modern: bool = Field(default=False, description="现代风格")
    is_vintage: bool = Field(default=False, description="复古风格")
    is_abstract: bool = Field(default=False, description="抽象/几何")
    has_emojis: bool = Field(default=False, description="文本是否含 emoji")

    colors: list[str] = Field(
        default_factory=list,
        max_length=5,
        description="按色板顺序排列的颜色族，最多 5 个",
    )
    mood: list[str] = Field(
        default_factory=lambda: ["neutral"],
        min_length=1,
        description="氛围分类，至少一个（无匹配时为 neutral）",
    )
    time_of_day: TimeOfDay = Field(default=TimeOfDay.UNKNOWN, description="时间段")
    word_count: int = Field(default=0, ge=0, description="空白分隔的 token 数")

    # 能力回显：文本自身包含 "does not support" 标记时为 False
    vision_supported: bool = Field(default=True, description="是否为正常视觉回答")

    keywords: list[str] = Field(
        default_factory=list,
        description="模型在 TAGS: 行中显式给出的标签",
    )
