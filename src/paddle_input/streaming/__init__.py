from paddle_input.streaming.pipeline import StreamPipeline
from paddle_input.streaming.validation import SampleValidator

__all__ = ["SampleValidator", "StreamPipeline"]
