"""
PDF Text Extract - Python Backend
Main entry point for hybrid PDF extraction via stdin/stdout JSON IPC
"""

import sys
import json
import uuid
import logging
from typing import Dict, Any, Optional
from pathlib import Path

# Configure logging to stderr (stdout is used for IPC)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


class IPCHandler:
    """Handles JSON-based IPC communication via stdin/stdout"""

    def __init__(self, service=None, task_store=None, out=None):
        from pdf_extract.progress import TaskProgressStore

        self.running = True
        self.current_request_id = None
        self._service = service
        self.task_store = task_store or TaskProgressStore()
        self.out = out or sys.stdout

    @property
    def service(self):
        # Created on first extract so check_runtime/get_task don't load the OCR stack
        if self._service is None:
            from pdf_extract.extract_service import HybridExtractService
            self._service = HybridExtractService()
        return self._service

    def send_event(self, event_type: str, data: Any, request_id: Optional[str] = None):
        """Send an event to the frontend via stdout"""
        event = {
            "type": event_type,
            "data": data
        }
        if request_id:
            event["request_id"] = request_id
        logger.debug(f"Sending {event_type} event (request_id: {request_id})")
        print(json.dumps(event), file=self.out, flush=True)

    def send_progress(self, task_id: str, payload: Dict[str, Any]):
        """Record a progress update and forward it to the frontend"""
        self.task_store.update(task_id, payload)
        self.send_event("progress", {
            "task_id": task_id,
            "percent": payload.get("progress"),
            "message": payload.get("step"),
            "metadata": payload.get("metadata", {}),
        }, request_id=self.current_request_id)

    def send_result(self, result: Any):
        """Send processing result"""
        self.send_event("result", result, request_id=self.current_request_id)

    def send_error(self, message: str, code: str = "INTERNAL_ERROR", details=None):
        """Send error message"""
        self.send_event("error", {
            "code": code,
            "message": message,
            "details": details or [],
        }, request_id=self.current_request_id)

    def handle_command(self, command: Dict[str, Any]):
        """Process incoming command"""
        cmd_type = command.get("command")
        self.current_request_id = command.get("request_id")
        logger.debug(f"Handling command '{cmd_type}' with request_id: {self.current_request_id}")

        if cmd_type == "extract":
            self.handle_extract(command)
        elif cmd_type == "check_runtime":
            self.handle_check_runtime(command)
        elif cmd_type == "get_task":
            self.handle_get_task(command)
        elif cmd_type == "shutdown":
            self.handle_shutdown()
        else:
            self.send_error(f"Unknown command: {cmd_type}", code="INPUT_INVALID")

    def handle_extract(self, command: Dict[str, Any]):
        """Extract a PDF file into a Word document written next to it (or to output_path)"""
        from pdf_extract.errors import ExtractionError, InputInvalidError

        file_path = command.get("file_path")
        options = command.get("options") or {}
        task_id = command.get("task_id") or str(uuid.uuid4())
        logger.info(f"Extracting PDF: {file_path} with options: {options}")

        self.task_store.start(task_id, operation="pdf_extract", metadata={"file_path": file_path})

        try:
            if not file_path:
                raise InputInvalidError(
                    "Provide exactly one PDF file",
                    details=[{"field": "file_path", "issue": "A PDF file path is required"}]
                )

            source = Path(file_path)
            try:
                data = source.read_bytes()
            except OSError as e:
                raise InputInvalidError(
                    f'Cannot read file "{source.name}"',
                    details=[{"field": "file_path", "issue": str(e)}]
                ) from e

            output_path = Path(command.get("output_path") or source.with_name(f"{source.stem}-extracted.docx"))

            document = self.service.extract(
                data,
                source.name,
                options,
                progress_callback=lambda payload: self.send_progress(task_id, payload)
            )
            output_path.write_bytes(document)

            self.task_store.complete(task_id, step="Word document generated")
            logger.info(f"Wrote {output_path} ({len(document)} bytes)")
            self.send_result({
                "status": "success",
                "task_id": task_id,
                "output_path": str(output_path),
                "size_bytes": len(document),
            })

        except ExtractionError as e:
            logger.error(f"Extraction failed: {e.code} {e.message}")
            self.task_store.fail(task_id, code=e.code, message=e.message)
            self.send_error(e.message, code=e.code, details=e.details)
        except Exception as e:
            logger.error(f"Extraction failed: {e}", exc_info=True)
            self.task_store.fail(task_id, code="INTERNAL_ERROR", message=str(e))
            self.send_error(str(e))

    def handle_check_runtime(self, command: Dict[str, Any]):
        """Report whether the OCR binaries and language packs are installed"""
        from pdf_extract.resource_path import inspect_runtime_dependencies
        from pdf_extract.settings import get_settings

        try:
            settings = get_settings()
            languages = (command.get("options") or {}).get("languages") or settings.allowed_languages

            status = inspect_runtime_dependencies(
                tesseract_command=settings.tesseract_command,
                pdftoppm_command=settings.pdftoppm_command,
                required_languages=languages
            )
            self.send_result(status.to_dict())

        except Exception as e:
            error_msg = f"Failed to check OCR runtime: {str(e)}"
            logger.error(error_msg, exc_info=True)
            self.send_error(error_msg)

    def handle_get_task(self, command: Dict[str, Any]):
        """Return the current progress record of a task"""
        task_id = command.get("task_id")
        task = self.task_store.get(task_id) if task_id else None

        if task is None:
            self.send_error(f"Unknown task: {task_id}", code="TASK_NOT_FOUND")
            return
        self.send_result(task)

    def handle_shutdown(self):
        logger.info("Shutdown requested")
        self.running = False
        self.task_store.clear()
        self.send_result({"status": "shutting_down"})

    def run(self, stream=None):
        """Main event loop - read commands from stdin"""
        logger.info("Python backend started, waiting for commands...")

        try:
            for line in stream or sys.stdin:
                if not self.running:
                    break

                line = line.strip()
                if not line:
                    continue

                try:
                    command = json.loads(line)
                    self.handle_command(command)
                except json.JSONDecodeError as e:
                    logger.error(f"Invalid JSON: {e}")
                    self.send_error(f"Invalid JSON: {str(e)}", code="INPUT_INVALID")
                except Exception as e:
                    logger.error(f"Command handling error: {e}", exc_info=True)
                    self.send_error(str(e))

        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self.task_store.clear()
            logger.info("Python backend shutting down")


if __name__ == "__main__":
    handler = IPCHandler()
    handler.run()
