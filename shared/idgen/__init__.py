from .snowflake import SnowflakeGenerator, ClockMovedBackwards

__all__ = ["SnowflakeGenerator", "ClockMovedBackwards"]
