"""Tests for ServiceResult and BaseService."""

import logging
from unittest.mock import patch

from core.exceptions import ConflictError, NotFoundError
from core.services import BaseService, ServiceResult


class ExampleService(BaseService):
    pass


class TestServiceResult:
    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert bool(result) is True
        assert result.data == {"id": 1}
        assert result.to_response() == {"success": True, "data": {"id": 1}}

    def test_failure(self):
        result = ServiceResult.failure("Nothing to cancel", error_code="SUBSCRIPTION_NOT_FOUND")

        assert bool(result) is False
        assert result.to_response() == {
            "success": False,
            "error": "Nothing to cancel",
            "error_code": "SUBSCRIPTION_NOT_FOUND",
        }

    def test_failure_without_code(self):
        assert ServiceResult.failure("Nope").to_response() == {"success": False, "error": "Nope"}

    def test_from_application_error(self):
        result = ServiceResult.from_exception(ConflictError("Already a customer"))

        assert result.error == "Already a customer"
        assert result.error_code == "CONFLICT"

    def test_from_other_exception(self):
        result = ServiceResult.from_exception(KeyError("price"))

        assert result.error_code == "KEYERROR"

    def test_explicit_error_code_wins(self):
        result = ServiceResult.from_exception(NotFoundError("Gone"), error_code="CUSTOM")

        assert result.error_code == "CUSTOM"


class TestBaseService:
    def test_logger_named_after_service(self):
        assert ExampleService.get_logger().name == "core.tests.test_services.ExampleService"

    def test_handle_exception_logs_and_converts(self):
        with patch.object(ExampleService, "get_logger") as get_logger:
            result = ExampleService.handle_exception(
                ConflictError("Already canceled"), "Cancel failed", logging.WARNING
            )

        get_logger.return_value.log.assert_called_once_with(
            logging.WARNING, "Cancel failed: Already canceled", exc_info=False
        )
        assert result.success is False
        assert result.error == "Already canceled"

    def test_handle_exception_includes_traceback_for_errors(self):
        with patch.object(ExampleService, "get_logger") as get_logger:
            ExampleService.handle_exception(RuntimeError("boom"))

        get_logger.return_value.log.assert_called_once_with(
            logging.ERROR, "boom", exc_info=True
        )


class TestApplicationErrors:
    def test_to_dict(self):
        error = ConflictError("Already a customer", details={"stripe_id": "cus_1"})

        assert error.to_dict() == {
            "error": "Already a customer",
            "error_code": "CONFLICT",
            "details": {"stripe_id": "cus_1"},
        }
        assert str(error) == "Already a customer"

    def test_custom_error_code(self):
        error = NotFoundError("Missing", error_code="PRODUCT_NOT_FOUND")

        assert error.to_dict() == {"error": "Missing", "error_code": "PRODUCT_NOT_FOUND"}
