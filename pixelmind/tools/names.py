from enum import Enum


class ToolName(str, Enum):
    """
    Closed set of tool identifiers the pipeline knows how to judge.

    Proposals naming anything else are rejected before validation.
    """

    COLOR_KNOCKOUT = "color_knockout"
    EXTRACT_COLOR_PALETTE = "extract_color_palette"
    RECOLOR_IMAGE = "recolor_image"
    TEXTURE_CUT = "texture_cut"
    BACKGROUND_REMOVER = "background_remover"
    UPSCALER = "upscaler"
    PICK_COLOR_AT_POSITION = "pick_color_at_position"
    AUTO_CROP = "auto_crop"
    CROP_WITH_SPACING = "crop_with_spacing"
    ROTATE_FLIP = "rotate_flip"
    SMART_RESIZE = "smart_resize"
    GENERATE_MOCKUP = "generate_mockup"

    @classmethod
    def parse(cls, value: str) -> "ToolName":
        try:
            return cls(value)
        except ValueError:
            raise KeyError(f"Unknown tool '{value}'.") from None
