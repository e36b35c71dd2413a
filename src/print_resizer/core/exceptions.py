"""项目内使用的自定义异常定义。"""


class PrintResizerError(Exception):
    """基础异常类型。"""


class InvalidConfigurationError(PrintResizerError):
    """配置不合法时抛出。"""


class InputValidationError(PrintResizerError):
    """上传的压缩包或规格文件不满足基本要求。"""


class ArchiveReadError(PrintResizerError):
    """输入压缩包无法读取，整个批次中止。"""


class ArchiveWriteError(PrintResizerError):
    """输出压缩包生成失败，仅打包阶段中止。"""


class ImageSizeLimitError(PrintResizerError):
    """单张源图片超过大小上限。"""


class ImageDecodeError(PrintResizerError):
    """源图片无法解码。"""


class ImageEncodeError(PrintResizerError):
    """缩放后的图片无法编码。"""
