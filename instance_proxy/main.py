import sys
import os
import argparse
from flask import Flask, Response, request
from werkzeug.exceptions import MethodNotAllowed
import logging

from instance_proxy.utils.config import load_config, get_config, apply_overrides, parse_listen_address, get_namespace
from instance_proxy.cluster.client import create_cluster_client
from instance_proxy.cluster.models import Strategy, ERROR_PATH
from instance_proxy.core.director import Director
from instance_proxy.core.errors import ClusterClientError
from instance_proxy.core.proxy import ProxyHandler
from instance_proxy.resolvers.strategy_factory import StrategyFactory

PROXY_METHODS = ['GET', 'HEAD', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS', 'TRACE']

def service_not_found() -> Response:
    return Response("Service not found", status=404, mimetype='text/plain')

def create_proxy_server(director: Director, proxy: ProxyHandler) -> Flask:
    """Creates the proxy server."""
    app = Flask(__name__)

    @app.route(ERROR_PATH, methods=PROXY_METHODS)
    def error():
        return service_not_found()

    # Everything else goes through the director; only /instance/<id> paths resolve
    @app.route('/', defaults={'path': ''}, methods=PROXY_METHODS)
    @app.route('/<path:path>', methods=PROXY_METHODS)
    def proxy_request(path):
        resolution = director.direct(request.path)
        if resolution.is_error:
            return error()
        return proxy.forward_request(request, resolution)

    # Methods outside PROXY_METHODS (WebDAV, PURGE, ...) are routed the same way
    @app.errorhandler(MethodNotAllowed)
    def any_method(e):
        return proxy_request(request.path)

    return app

def setup_logging(logging_config: dict) -> None:
    log_level_name = str(logging_config.get('level', 'INFO')).upper()
    log_file = logging_config.get('file')

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level_name, logging.INFO))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Console Handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File Handler (if specified)
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Keep Werkzeug's per-request access log out of the proxy log
    logging.getLogger('werkzeug').setLevel(logging.ERROR)

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the instance proxy.")
    parser.add_argument('--config', type=str, default=None, help='Path to the configuration file.')
    parser.add_argument('--kubeconfig', type=str, default=None, help='Path to a kubeconfig file (default: in-cluster config).')
    parser.add_argument('--listen', type=str, default=None, help='Address to listen on, e.g. :8080.')
    parser.add_argument('--namespace', type=str, default=None, help='Kubernetes namespace, empty for all namespaces.')
    parser.add_argument('--strategy', type=str, default=None, choices=[s.value for s in Strategy],
                        help='How identifiers are resolved to services.')
    return parser.parse_args(argv)

def main(argv=None) -> None:
    args = parse_args(argv)

    if args.config is not None and not os.path.exists(args.config):
        print(f"Error: Configuration file not found at {args.config}", file=sys.stderr)
        sys.exit(1)

    # Load configuration
    load_config(args.config or 'config.yaml')
    apply_overrides({
        'proxy': {'listen': args.listen},
        'kubernetes': {'kubeconfig': args.kubeconfig, 'namespace': args.namespace},
        'discovery': {'strategy': args.strategy},
    })
    config = get_config()

    setup_logging(config.get('logging', {}))
    logger = logging.getLogger(__name__)

    proxy_config = config.get('proxy', {})
    kubernetes_config = config.get('kubernetes', {})
    discovery_config = config.get('discovery', {})
    namespace = get_namespace(config)

    try:
        host, port = parse_listen_address(proxy_config.get('listen', ':8080'))
        strategy = Strategy(discovery_config.get('strategy', Strategy.DEPLOYMENT_NAME.value))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        cluster = create_cluster_client(
            kubeconfig=kubernetes_config.get('kubeconfig'),
            namespace=namespace,
            user_agent=kubernetes_config.get('user_agent'),
            verify_namespace=kubernetes_config.get('verify_namespace', True),
            page_size=discovery_config.get('page_size', 500),
            timeout=discovery_config.get('timeout', 5)
        )
    except ClusterClientError as e:
        print(f"Error creating Kubernetes client: {e}", file=sys.stderr)
        sys.exit(1)

    workload_resolver, endpoint_resolver = StrategyFactory.get_resolvers(strategy, cluster, namespace)
    director = Director(workload_resolver, endpoint_resolver, timeout=discovery_config.get('timeout', 5))
    proxy = ProxyHandler(
        timeout=proxy_config.get('timeout', 30),
        user_agent=proxy_config.get('user_agent', '')
    )
    app = create_proxy_server(director, proxy)

    logger.info(f"Resolving instances by {strategy.value} in namespace {namespace or '<all>'}")
    logger.info(f"Starting proxy server on {host}:{port}")

    try:
        app.run(host=host, port=port, threaded=True)
    except OSError as e:
        print(f"Error starting proxy server: {e}", file=sys.stderr)
        sys.exit(1)

if __name__ == '__main__':
    main()
