"""
常量定义

按项目类型索引的静态查找表，避免在调用处散落字符串比较。
"""

from mlclassroom.core.enums import ProjectType, ServiceType

# 面向用户的 Provider 名称（出现在限流 / 容量错误文案中）
PROVIDER_DISPLAY_NAMES: dict[ProjectType, str] = {
    ProjectType.TEXT: "Watson Assistant",
    ProjectType.IMAGES: "Watson Visual Recognition",
    ProjectType.NUMBERS: "numbers service",
}

# 需要租户凭据的项目类型 -> 凭据服务类型；numbers 使用服务级配置认证
PROJECT_SERVICE_TYPES: dict[ProjectType, ServiceType] = {
    ProjectType.TEXT: ServiceType.CONVERSATION,
    ProjectType.IMAGES: ServiceType.VISUAL_RECOGNITION,
}


class ProviderDefaults:
    """Provider 协议默认值"""

    CONVERSATION_API_VERSION = "2018-09-20"
    VISUAL_RECOGNITION_API_VERSION = "2018-03-19"

    # 单套凭据可容纳的模型数（Lite 套餐限制）
    CONVERSATION_MODELS_PER_CREDENTIALS = 5
    VISUAL_RECOGNITION_MODELS_PER_CREDENTIALS = 2


class TenantDefaults:
    """未配置 ClassTenant 行的班级使用的默认策略"""

    MAX_TEXT_MODELS = 10
    MAX_IMAGE_MODELS = 3
    TEXT_CLASSIFIER_EXPIRY_HOURS = 24
    IMAGE_CLASSIFIER_EXPIRY_HOURS = 24


class HttpDefaults:
    CONNECT_TIMEOUT = 10.0
    READ_TIMEOUT = 60.0
    WRITE_TIMEOUT = 60.0
    POOL_TIMEOUT = 10.0
    MAX_CONNECTIONS = 100
    KEEPALIVE_CONNECTIONS = 20
    KEEPALIVE_EXPIRY = 30.0
