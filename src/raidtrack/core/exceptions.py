"""进度引擎异常体系

目录完整性问题在加载阶段收集为诊断信息，不向展示层抛出；
成员数据缺失在快照阶段被捕获，该成员按零贡献跳过。
"""


class RaidtrackError(Exception):
    """raidtrack 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可跳过并继续处理
        """
        super().__init__(message)
        self.recoverable = recoverable


class CatalogIntegrityError(RaidtrackError):
    """目录数据引用了不存在的实体

    例如 hideout 等级需求指向不存在的 (station, level)，
    或任务前置需求指向不存在的任务。处理策略：跳过该边/需求，继续构建。
    """

    def __init__(self, subject_id: str, reference: str, message: str) -> None:
        """
        Args:
            subject_id: 声明该引用的实体 ID（hideout level 或 task）
            reference: 无法解析的引用描述
            message: 错误描述
        """
        super().__init__(message, recoverable=True)
        self.subject_id = subject_id
        self.reference = reference

    def __repr__(self) -> str:
        return f"CatalogIntegrityError(subject_id={self.subject_id!r}, reference={self.reference!r})"


class MissingMemberDataError(RaidtrackError):
    """成员 feed 尚未到达、已被移除或格式不可用

    预期内的情况：调用方捕获后将该成员视为零贡献。
    """

    def __init__(self, member_id: str, reason: str = "feed 不可用") -> None:
        super().__init__(f"成员 {member_id} 数据缺失: {reason}", recoverable=True)
        self.member_id = member_id
        self.reason = reason
