from .color_knockout import COLOR_KNOCKOUT_TOOL
from .extract_color_palette import EXTRACT_COLOR_PALETTE_TOOL
from .recolor_image import RECOLOR_IMAGE_TOOL
from .texture_cut import TEXTURE_CUT_TOOL
from .background_remover import BACKGROUND_REMOVER_TOOL
from .upscaler import UPSCALER_TOOL
from .pick_color_at_position import PICK_COLOR_AT_POSITION_TOOL
from .auto_crop import AUTO_CROP_TOOL
from .crop_with_spacing import CROP_WITH_SPACING_TOOL
from .rotate_flip import ROTATE_FLIP_TOOL
from .smart_resize import SMART_RESIZE_TOOL
from .generate_mockup import GENERATE_MOCKUP_TOOL

BUILTIN_TOOLS = (
    COLOR_KNOCKOUT_TOOL,
    EXTRACT_COLOR_PALETTE_TOOL,
    RECOLOR_IMAGE_TOOL,
    TEXTURE_CUT_TOOL,
    BACKGROUND_REMOVER_TOOL,
    UPSCALER_TOOL,
    PICK_COLOR_AT_POSITION_TOOL,
    AUTO_CROP_TOOL,
    CROP_WITH_SPACING_TOOL,
    ROTATE_FLIP_TOOL,
    SMART_RESIZE_TOOL,
    GENERATE_MOCKUP_TOOL,
)

__all__ = [
    "BUILTIN_TOOLS",
    "COLOR_KNOCKOUT_TOOL",
    "EXTRACT_COLOR_PALETTE_TOOL",
    "RECOLOR_IMAGE_TOOL",
    "TEXTURE_CUT_TOOL",
    "BACKGROUND_REMOVER_TOOL",
    "UPSCALER_TOOL",
    "PICK_COLOR_AT_POSITION_TOOL",
    "AUTO_CROP_TOOL",
    "CROP_WITH_SPACING_TOOL",
    "ROTATE_FLIP_TOOL",
    "SMART_RESIZE_TOOL",
    "GENERATE_MOCKUP_TOOL",
]
