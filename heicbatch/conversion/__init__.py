from .codec import CodecGateway
from .finalize import OutputFinalizer
from .models import ConversionOutcome, FailureKind, TargetFormat, Task, TaskStatus

__all__ = ["CodecGateway", "OutputFinalizer", "ConversionOutcome", "FailureKind", "TargetFormat", "Task", "TaskStatus"]
