"""
Comparison orchestration.

Drives a full run: generates iterations, renders payloads, calls the
configured APIs, compares responses, and in BASELINE mode captures or
replays stored runs. Failures are attached to the iteration that produced
them; execute() itself never raises.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from apidrift.comparison.engine import compare_result
from apidrift.config.settings import ApiConfig, Authentication, Config, ConfigurationError, Operation
from apidrift.domain.baseline import BaselineIteration, BaselineRun, IterationMetadata, RunMetadata
from apidrift.domain.result import ApiCallResult, ComparisonResult, ComparisonStatus
from apidrift.generation.iterations import generate, with_original_payload
from apidrift.http.client import ApiClient, construct_url
from apidrift.storage.baseline_store import BaselineRepository, FileSystemBaselineStore
from apidrift.storage.exceptions import BaselineStoreException
from apidrift.templating.payload import PayloadFormat, PayloadTemplater, RenderResult
from apidrift.utils.logger import get_logger
from apidrift.utils.timezone import iso_timestamp, report_timestamp

logger = get_logger(__name__)

ORIGINAL_PAYLOAD_SUFFIX = " (Original Input Payload)"
CONTENT_TYPES = {"SOAP": "text/xml;charset=UTF-8", "REST": "application/json"}

ClientFactory = Callable[[Optional[Authentication]], ApiClient]
StoreFactory = Callable[[str], BaselineRepository]


def _default_client_factory(authentication: Optional[Authentication]) -> ApiClient:
    return ApiClient(authentication)


class ComparisonService:
    """
    Runs LIVE comparisons and BASELINE capture/compare.

    Attributes:
        client_factory: Builds an ApiClient per configured API
        store_factory: Builds a BaselineRepository for a storage directory
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        store_factory: Optional[StoreFactory] = None,
    ):
        self.client_factory = client_factory or _default_client_factory
        self.store_factory = store_factory or FileSystemBaselineStore
        self._templaters: Dict[tuple, PayloadTemplater] = {}

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def execute(self, config: Config) -> List[ComparisonResult]:
        """Run the configured comparison and return one result per iteration/operation."""
        self._templaters = {}
        if config.comparison_mode == "BASELINE":
            return self._execute_baseline_mode(config)

        try:
            return self._execute_live(config)
        except (ConfigurationError, ValueError) as e:
            logger.error("Live comparison aborted", operation="execute", error=str(e))
            return [self._error_result("Comparison", f"Live comparison failed: {e}")]

    def _execute_baseline_mode(self, config: Config) -> List[ComparisonResult]:
        try:
            baseline = config.baseline
            if baseline is None:
                raise ConfigurationError(
                    "Baseline configuration is required when comparisonMode is BASELINE"
                )

            store = self.store_factory(baseline.storage_dir)
            if baseline.operation == "CAPTURE":
                logger.info("Executing baseline CAPTURE mode", operation="execute")
                return self.capture_baseline(config, store)
            if baseline.operation == "COMPARE":
                logger.info("Executing baseline COMPARE mode", operation="execute")
                return self.compare_with_baseline(config, store)
            raise ConfigurationError(
                f"Invalid baseline operation: {baseline.operation}. Must be CAPTURE or COMPARE"
            )
        except (ConfigurationError, ValueError, BaselineStoreException) as e:
            logger.error("Baseline mode failed", operation="execute", error=str(e))
            return [self._error_result("Baseline", f"Baseline mode failed: {e}")]

    # ------------------------------------------------------------------ #
    # LIVE mode
    # ------------------------------------------------------------------ #

    def _iterations(self, config: Config) -> List[Mapping[str, Any]]:
        logger.info(
            "Generating iterations",
            operation="generate_iterations",
            context={"strategy": config.iteration_controller, "max_iterations": config.max_iterations},
        )
        iterations = generate(config.tokens, config.max_iterations, config.iteration_controller)
        return with_original_payload(config.tokens, iterations)

    def _execute_live(self, config: Config) -> List[ComparisonResult]:
        api1, api2 = self._require_apis(config, need_api2=True)
        client1 = self.client_factory(api1.authentication)
        client2 = self.client_factory(api2.authentication)

        results: List[ComparisonResult] = []
        for number, tokens in enumerate(self._iterations(config), start=1):
            is_original = number == 1
            logger.info(
                "Running iteration",
                operation="run_iteration",
                context={"iteration": number, "tokens": dict(tokens), "original": is_original},
            )

            for op1 in api1.operations:
                op2 = api2.find_operation(op1.name)
                if op2 is None:
                    logger.warning(
                        "No matching operation in api2, skipping",
                        operation="run_iteration",
                        context={"operation_name": op1.name},
                    )
                    continue

                result = self._new_result(op1, tokens, is_original)
                try:
                    result.api1 = self._call(client1, api1, op1, tokens, config.test_type, result)
                    result.api2 = self._call(client2, api2, op2, tokens, config.test_type, result)
                    compare_result(result, config.test_type)
                except Exception as e:
                    logger.error(
                        "Operation comparison failed",
                        operation="run_iteration",
                        context={"iteration": number, "operation_name": op1.name},
                        error=str(e),
                    )
                    result.fail(f"Operation failed: {e}")
                results.append(result)

        return results

    # ------------------------------------------------------------------ #
    # BASELINE mode
    # ------------------------------------------------------------------ #

    def capture_baseline(self, config: Config, store: BaselineRepository) -> List[ComparisonResult]:
        """
        Execute api1 for every iteration and persist the exchanges as a new run.

        Run-id allocation and the save happen under the store's run lock so
        concurrent captures for the same service and date get distinct ids.
        """
        baseline = config.baseline
        if baseline is None or not baseline.service_name:
            raise ConfigurationError("Baseline configuration with serviceName is required for CAPTURE mode")

        api1, _ = self._require_apis(config, need_api2=False)
        operation = api1.operations[0]
        client = self.client_factory(api1.authentication)
        service_name = baseline.service_name
        date = store.today()
        iterations = self._iterations(config)

        with store.run_lock(service_name, date):
            run_id = store.generate_run_id(service_name, date)
            logger.info(
                "Capturing baseline",
                operation="capture_baseline",
                context={"service": service_name, "date": date, "run_id": run_id},
            )

            results: List[ComparisonResult] = []
            captured: List[BaselineIteration] = []
            for number, tokens in enumerate(iterations, start=1):
                result = self._new_result(operation, tokens, number == 1)
                self._set_provenance(result, service_name, date, run_id, baseline.storage_dir)
                result.baseline_description = (
                    f"Baseline captured to: {baseline.storage_dir}/{service_name}/{date}/{run_id}"
                )
                result.baseline_tags = list(baseline.tags)
                result.baseline_capture_timestamp = iso_timestamp()
                try:
                    result.api1 = self._call(client, api1, operation, tokens, config.test_type, result)
                    result.status = ComparisonStatus.MATCH
                    captured.append(
                        self._to_baseline_iteration(result, number, tokens, api1, operation, config.test_type)
                    )
                except Exception as e:
                    logger.error(
                        "Capture failed",
                        operation="capture_baseline",
                        context={"iteration": number},
                        error=str(e),
                    )
                    result.fail(f"Capture failed: {e}")
                results.append(result)

            metadata = RunMetadata(
                run_id=run_id,
                service_name=service_name,
                capture_date=date,
                capture_timestamp=iso_timestamp(),
                test_type=config.test_type,
                endpoint=api1.base_url,
                operation=operation.name,
                total_iterations=len(captured),
                description=baseline.description,
                tags=list(baseline.tags),
                config_used=config.snapshot(),
            )
            try:
                store.save_baseline(metadata, captured)
            except BaselineStoreException as e:
                logger.error("Baseline save failed", operation="capture_baseline", error=str(e))
                results.append(self._error_result(operation.name, f"Baseline save failed: {e}"))

        return results

    def compare_with_baseline(self, config: Config, store: BaselineRepository) -> List[ComparisonResult]:
        """
        Replay every stored iteration against api1 and compare with the stored response.

        Raises:
            ConfigurationError: If service, date, or run id are missing
            BaselineNotFoundError: If the referenced run does not exist
        """
        baseline = config.baseline
        if (
            baseline is None
            or not baseline.service_name
            or not baseline.compare_date
            or not baseline.compare_run_id
        ):
            raise ConfigurationError(
                "Baseline configuration with serviceName, compareDate, and compareRunId "
                "is required for COMPARE mode"
            )

        run = store.load_baseline(baseline.service_name, baseline.compare_date, baseline.compare_run_id)
        api1, _ = self._require_apis(config, need_api2=False)
        operation = api1.operations[0]
        client = self.client_factory(api1.authentication)

        results: List[ComparisonResult] = []
        for stored in run.iterations:
            number = stored.iteration_number
            tokens = self._restore_tokens(stored.request_metadata.tokens_used, config.tokens)
            result = self._new_result(operation, tokens, number == 1)
            self._apply_run_provenance(result, run, baseline.storage_dir)

            try:
                result.api1 = self._call(client, api1, operation, tokens, config.test_type, result)
                result.api2 = self._baseline_call(stored)
                compare_result(result, config.test_type, ignore_comments=True)
            except Exception as e:
                logger.error(
                    "Baseline comparison failed",
                    operation="compare_with_baseline",
                    context={"iteration": number},
                    error=str(e),
                )
                result.fail(f"Comparison failed: {e}")
            results.append(result)

        logger.info(
            "Baseline comparison completed",
            operation="compare_with_baseline",
            context={"iterations": len(results)},
        )
        return results

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_apis(config: Config, need_api2: bool):
        apis = config.apis
        api1 = apis.get("api1")
        api2 = apis.get("api2")
        if api1 is None or (need_api2 and api2 is None):
            required = "'api1' and 'api2'" if need_api2 else "'api1'"
            raise ConfigurationError(
                f"Comparison requires {required} to be configured for test type '{config.test_type}'"
            )
        return api1, api2

    @staticmethod
    def _new_result(operation: Operation, tokens: Mapping[str, Any], is_original: bool) -> ComparisonResult:
        name = operation.name + (ORIGINAL_PAYLOAD_SUFFIX if is_original else "")
        return ComparisonResult(
            operation_name=name,
            iteration_tokens=dict(tokens),
            timestamp=report_timestamp(),
        )

    @staticmethod
    def _error_result(operation_name: str, message: str) -> ComparisonResult:
        result = ComparisonResult(operation_name=operation_name, timestamp=report_timestamp())
        result.fail(message)
        return result

    def _render(self, operation: Operation, tokens: Mapping[str, Any], test_type: str) -> Optional[RenderResult]:
        if not operation.payload_template_path:
            return None
        fmt = PayloadFormat.for_test_type(test_type)
        key = (operation.payload_template_path, fmt)
        templater = self._templaters.get(key)
        if templater is None:
            templater = PayloadTemplater.from_source(operation.payload_template_path, fmt)
            self._templaters[key] = templater
        return templater.process(tokens)

    def _call(
        self,
        client: ApiClient,
        api: ApiConfig,
        operation: Operation,
        tokens: Mapping[str, Any],
        test_type: str,
        result: ComparisonResult,
    ) -> ApiCallResult:
        rendered = self._render(operation, tokens, test_type)
        if rendered is not None and rendered.fell_back:
            result.payload_fell_back = True

        call = ApiCallResult(
            url=construct_url(api.base_url, operation.path, test_type),
            method=operation.method,
            request_headers=dict(operation.headers),
            request_payload=rendered.text if rendered is not None else None,
        )
        response = client.send_request(call.url, call.method, call.request_headers, call.request_payload)
        call.status_code = response.status_code
        call.response_headers = dict(response.headers)
        call.response_payload = response.body
        call.duration_ms = response.duration_ms
        return call

    @staticmethod
    def _baseline_call(stored: BaselineIteration) -> ApiCallResult:
        return ApiCallResult(
            url=stored.request_metadata.endpoint,
            method=stored.request_metadata.method,
            request_headers=dict(stored.request_headers),
            request_payload=stored.request_payload,
            status_code=stored.status_code,
            response_headers=dict(stored.response_headers),
            response_payload=stored.response_payload,
            duration_ms=stored.duration or 0.0,
        )

    @staticmethod
    def _to_baseline_iteration(
        result: ComparisonResult,
        number: int,
        tokens: Mapping[str, Any],
        api: ApiConfig,
        operation: Operation,
        test_type: str,
    ) -> BaselineIteration:
        call = result.api1
        request_metadata = IterationMetadata(
            iteration_number=number,
            timestamp=result.timestamp,
            tokens_used={name: _token_text(value) for name, value in tokens.items()},
            endpoint=call.url,
            method=call.method,
            soap_action=operation.headers.get("SOAPAction"),
            authentication=api.authentication.descriptor() if api.authentication else {},
        )
        response_metadata = {
            "statusCode": call.status_code,
            "duration": round(call.duration_ms),
            "timestamp": result.timestamp,
            "contentType": call.response_headers.get("Content-Type", CONTENT_TYPES.get(test_type)),
        }
        return BaselineIteration(
            iteration_number=number,
            request_payload=call.request_payload or "",
            request_headers=dict(call.request_headers),
            request_metadata=request_metadata,
            response_payload=call.response_payload or "",
            response_headers=dict(call.response_headers),
            response_metadata=response_metadata,
        )

    @staticmethod
    def _restore_tokens(tokens_used: Mapping[str, str], configured: Mapping[str, List[Any]]) -> Dict[str, Any]:
        """
        Map stored token text back to configured values.

        Stored tokens are strings; when the text matches a configured
        candidate the typed candidate is used so numeric fields render the
        same way they did at capture time.
        """
        restored: Dict[str, Any] = {}
        for name, text in tokens_used.items():
            value: Any = text
            for candidate in configured.get(name, []):
                if _token_text(candidate) == text:
                    value = candidate
                    break
            restored[name] = value
        return restored

    @staticmethod
    def _set_provenance(result: ComparisonResult, service: str, date: str, run_id: str, storage_dir: str) -> None:
        result.baseline_service_name = service
        result.baseline_date = date
        result.baseline_run_id = run_id
        result.baseline_path = f"{storage_dir}/{service}/{date}/{run_id}"

    def _apply_run_provenance(self, result: ComparisonResult, run: BaselineRun, storage_dir: str) -> None:
        metadata = run.metadata
        self._set_provenance(result, metadata.service_name, metadata.capture_date, metadata.run_id, storage_dir)
        result.baseline_description = metadata.description
        result.baseline_tags = list(metadata.tags)
        result.baseline_capture_timestamp = metadata.capture_timestamp


def _token_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
