# local host for deAPI jobs: runs operations, receives resume callbacks and trigger webhooks

from collections import deque
from datetime import datetime, timezone

import requests
from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

from deapi_bridge.binary_data import CHUNK_SIZE
from deapi_bridge.config import BridgeArgs, Credentials
from deapi_bridge.errors import OperationError
from deapi_bridge.host import ExecutionStatus, ExecutionStore, LocalExecutionHost, LocalWebhookHost
from deapi_bridge.logger import get_logger
from deapi_bridge.models import ExecuteRequest, WorkflowItem
from deapi_bridge.router import route
from deapi_bridge.storage import FileBinaryStore
from deapi_bridge.webhook import handle_resume_webhook, handle_trigger_webhook

logger = get_logger(__name__)

MAX_TRIGGERED = 100


def _dump_items(items: list[WorkflowItem]) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def create_app(
    args: BridgeArgs,
    credentials: Credentials,
    store: ExecutionStore | None = None,
    session: requests.Session | None = None,
) -> Flask:
    app = Flask(__name__)

    store = store or ExecutionStore()
    binary_store = FileBinaryStore(args.binary_dir)
    host_kwargs = {
        "session": session or requests.Session(),
        "binary_store": binary_store,
        "inline_binary_limit": args.inline_binary_limit,
        "timeout": args.http_timeout,
    }

    # Keep the most recent triggered workflow inputs
    triggered = deque(maxlen=MAX_TRIGGERED)

    app.config["EXECUTION_STORE"] = store
    app.config["BINARY_STORE"] = binary_store

    def _read_execute_request() -> ExecuteRequest:
        if request.mimetype == "multipart/form-data":
            if "request" not in request.form:
                raise ValueError("Multipart runs need a 'request' field")
            execute = ExecuteRequest.model_validate_json(request.form["request"])
            if not execute.items:
                execute.items.append(WorkflowItem())

            # Uploaded files become binary properties of the first item
            web_host = LocalWebhookHost(**host_kwargs)
            first = execute.items[0]
            first.binary = dict(first.binary or {})
            for name, file in request.files.items():
                first.binary[name] = web_host.prepare_binary_data(file.read(), file.filename or name, file.mimetype)
            return execute

        return ExecuteRequest.model_validate_json(request.get_data())

    @app.route('/api/execute', methods=['POST'])
    def execute():
        try:
            execute_request = _read_execute_request()
        except (ValueError, ValidationError) as e:
            return jsonify({"error": f"Invalid run request: {e}"}), 400

        parameters = dict(execute_request.parameters)
        parameters["resource"] = execute_request.resource
        parameters["operation"] = execute_request.operation

        host = LocalExecutionHost(
            execute_request.items,
            parameters,
            credentials,
            store=store,
            continue_on_fail=execute_request.continue_on_fail,
            public_url=args.public_url,
            api_base_url=args.api_base_url,
            **host_kwargs,
        )

        try:
            data = route(host)
        except OperationError as e:
            logger.error("Execution %s failed: %s", host.execution_id, e.message)
            store.fail(host.execution_id, e.message)
            return jsonify({
                "execution_id": host.execution_id,
                "status": ExecutionStatus.ERROR.value,
                "error": e.message,
                "context": e.context,
            }), 400

        # A callback may already have resumed the execution while the job was submitted
        store.finish_if_running(host.execution_id, data)
        execution = store.get(host.execution_id)

        return jsonify({
            "execution_id": host.execution_id,
            "status": execution.status.value,
            "wait_till": execution.wait_till.isoformat() if execution.wait_till else None,
            "data": _dump_items(data),
        }), 200

    @app.route('/api/executions/<execution_id>', methods=['GET'])
    def get_execution(execution_id):
        execution = store.get(execution_id)
        if execution is None:
            return jsonify({"error": "Unknown execution"}), 404
        return jsonify(execution.model_dump(mode="json"))

    @app.route('/webhook/<execution_id>', methods=['POST'])
    def resume_webhook(execution_id):
        execution = store.get(execution_id)
        if execution is None:
            return "Unknown execution", 404
        if execution.status != ExecutionStatus.WAITING:
            return "Execution is not waiting", 409
        if execution.is_overdue():
            store.expire(execution_id)
            logger.warning("Execution %s expired before its callback arrived", execution_id)
            return "Execution expired", 410

        try:
            response = handle_resume_webhook(
                LocalWebhookHost(**host_kwargs),
                credentials.webhook_secret,
                request.headers,
                request.get_data(),
            )
        except requests.RequestException as e:
            logger.error("Could not download the result of execution %s: %s", execution_id, e)
            return "Could not download result", 502

        if response.resumed:
            if not store.resume(execution_id, response.workflow_data):
                return "Execution is not waiting", 409
            logger.info("Resumed execution %s", execution_id)

        return response.body, response.status_code

    @app.route('/trigger', methods=['POST'])
    def trigger_webhook():
        try:
            response = handle_trigger_webhook(
                LocalWebhookHost(**host_kwargs),
                credentials.webhook_secret,
                request.headers,
                request.get_data(),
                args.trigger_events,
                download_binary=args.trigger_download_binary,
            )
        except requests.RequestException as e:
            logger.error("Could not download the triggered result: %s", e)
            return "Could not download result", 502

        if response.resumed:
            triggered.append({
                "received_at": datetime.now(timezone.utc).isoformat(),
                "items": _dump_items(response.workflow_data),
            })

        return response.body, response.status_code

    @app.route('/api/triggers', methods=['GET'])
    def list_triggers():
        return jsonify(list(triggered))

    @app.route('/api/binary/<binary_id>', methods=['GET'])
    def get_binary(binary_id):
        if not binary_store.exists(binary_id):
            return jsonify({"error": "Unknown binary"}), 404
        return Response(binary_store.stream(binary_id, CHUNK_SIZE), mimetype="application/octet-stream")

    return app

