"""
AWS Lambda Invoker

Invoke Lambda functions through boto3.
Asynchronous invocations run on a bounded thread pool.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..interface import BaseInvoker
from ..models import InvocationResult
from ..exceptions import FunctionNotFoundError, InvokerError

logger = logging.getLogger(__name__)


class AWSLambdaInvoker(BaseInvoker):
    """
    AWS Lambda based invoker.

    Prerequisites:
    - IAM permissions for lambda:InvokeFunction
    - lambda:ListFunctions and lambda:ListAliases for listing calls

    Example:
        invoker = AWSLambdaInvoker(region="eu-west-1")
        future = invoker.invoke_async("orders-api", qualifier="live")
        result = future.result()
    """

    def __init__(
        self,
        region: Optional[str] = None,
        max_workers: int = 32,
        max_retries: int = 3,
        connect_timeout: int = 10,
        read_timeout: int = 60,
        lambda_client: Any = None,
    ):
        """
        Initialize AWS Lambda invoker.

        Args:
            region: AWS region (boto3 default resolution if None)
            max_workers: Threads used for asynchronous invocations
            max_retries: Max retry attempts for failed invocations
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            lambda_client: Preconfigured boto3 Lambda client
        """
        self.region = region

        if lambda_client is None:
            config = Config(
                region_name=region,
                retries={"max_attempts": max_retries, "mode": "adaptive"},
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                max_pool_connections=max(max_workers, 10),
            )
            lambda_client = boto3.client("lambda", config=config)

        self.lambda_client = lambda_client
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="lambda-invoke",
        )

    def invoke(
        self,
        function_name: str,
        qualifier: Optional[str] = None,
        payload: bytes = b"",
    ) -> InvocationResult:
        """Invoke Lambda function and wait for the response"""
        request: Dict[str, Any] = {
            "FunctionName": function_name,
            "InvocationType": "RequestResponse",
            "Payload": payload,
        }
        if qualifier:
            request["Qualifier"] = qualifier

        try:
            response = self.lambda_client.invoke(**request)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))

            if error_code == "ResourceNotFoundException":
                raise FunctionNotFoundError(function_name, qualifier) from e

            raise InvokerError(
                f"Lambda invocation failed: {error_code} - {error_message}",
                function_name=function_name,
                error_code=error_code,
            ) from e
        except BotoCoreError as e:
            raise InvokerError(
                f"Lambda invocation failed: {e}",
                function_name=function_name,
            ) from e

        body = response.get("Payload")
        return InvocationResult(
            status_code=response.get("StatusCode", 0),
            payload=body.read() if body is not None else b"",
            function_error=response.get("FunctionError"),
            executed_version=response.get("ExecutedVersion"),
            log_result=response.get("LogResult"),
        )

    def invoke_async(
        self,
        function_name: str,
        qualifier: Optional[str] = None,
        payload: bytes = b"",
    ) -> "Future[InvocationResult]":
        """Submit invocation to the thread pool"""
        return self._executor.submit(self.invoke, function_name, qualifier, payload)

    def list_functions(
        self, marker: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """List one page of Lambda functions"""
        request: Dict[str, Any] = {}
        if marker:
            request["Marker"] = marker

        try:
            response = self.lambda_client.list_functions(**request)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise InvokerError(
                f"Listing functions failed: {error_code}",
                error_code=error_code,
            ) from e

        return response.get("Functions", []), response.get("NextMarker")

    def list_aliases(self, function_name: str) -> List[str]:
        """List all alias names of a Lambda function"""
        aliases: List[str] = []
        marker: Optional[str] = None

        while True:
            request: Dict[str, Any] = {"FunctionName": function_name}
            if marker:
                request["Marker"] = marker

            try:
                response = self.lambda_client.list_aliases(**request)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                if error_code == "ResourceNotFoundException":
                    raise FunctionNotFoundError(function_name) from e
                raise InvokerError(
                    f"Listing aliases failed: {error_code}",
                    function_name=function_name,
                    error_code=error_code,
                ) from e

            aliases.extend(alias["Name"] for alias in response.get("Aliases", []))
            marker = response.get("NextMarker")
            if not marker:
                return aliases

    def shutdown(self) -> None:
        """Stop accepting asynchronous invocations"""
        self._executor.shutdown(wait=False)
        logger.info("AWSLambdaInvoker shut down")
