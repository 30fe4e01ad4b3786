from abc import ABC, abstractmethod
from pydantic import BaseModel
from typing import Any, Optional
import logging
import time
import asyncio


class AgentStatus:
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    RETRYING = "retrying"


class AgentResult(BaseModel):
    status: str
    output: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    execution_time_seconds: float = 0.0
    retry_count: int = 0


class BaseAgent(ABC):
    """
    Abstract base class for pipeline agents.

    execute() runs run() + validate() up to max_attempts times with identical
    input. Only the last failure is reported. Between attempts it sleeps
    retry_backoff * 2 ** (attempt - 1) seconds; a backoff of 0 retries at once.
    """

    def __init__(self, name: str, llm_service=None, config: Optional[dict] = None):
        config = config or {}
        self.name = name
        self.llm = llm_service
        self.config = config
        self.logger = logging.getLogger(f"agent.{name}")
        self.status = AgentStatus.IDLE
        self.max_attempts = max(1, config.get("max_attempts", 1))
        self.retry_backoff = config.get("retry_backoff", 0.0)
        self.last_error: Optional[Exception] = None

    async def execute(self, input_data: Any) -> AgentResult:
        """Execute with retry logic and timing."""
        start = time.time()
        self.status = AgentStatus.RUNNING
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt < self.max_attempts:
            attempt += 1
            try:
                self.logger.info(f"[{self.name}] Executing (attempt {attempt}/{self.max_attempts})")
                output = await self.run(input_data)
                validated = await self.validate(output)
                self.status = AgentStatus.SUCCESS
                return AgentResult(
                    status=AgentStatus.SUCCESS,
                    output=validated,
                    execution_time_seconds=time.time() - start,
                    retry_count=attempt - 1,
                )
            except Exception as e:
                last_error = e
                self.logger.error(f"[{self.name}] Attempt {attempt}/{self.max_attempts} failed: {e}")
                if attempt < self.max_attempts:
                    self.status = AgentStatus.RETRYING
                    if self.retry_backoff > 0:
                        await asyncio.sleep(self.retry_backoff * 2 ** (attempt - 1))

        self.status = AgentStatus.FAILED
        self.last_error = last_error
        return AgentResult(
            status=AgentStatus.FAILED,
            error=str(last_error),
            error_type=type(last_error).__name__,
            execution_time_seconds=time.time() - start,
            retry_count=attempt - 1,
        )

    @abstractmethod
    async def run(self, input_data: Any) -> Any:
        """Core agent logic, implemented by subclasses."""
        ...

    async def validate(self, output: Any) -> Any:
        """Optional validation hook. Override for custom validation."""
        return output
