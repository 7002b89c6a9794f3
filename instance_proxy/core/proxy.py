import requests
from flask import Request, Response, stream_with_context
from typing import Dict, List, Tuple
import logging
from instance_proxy.cluster.models import Resolution

class ProxyHandler:
    def __init__(self, timeout: int = 30, user_agent: str = ""):
        self.timeout = timeout
        self.user_agent = user_agent
        self.logger = logging.getLogger(__name__)

    def build_url(self, client_request: Request, resolution: Resolution) -> str:
        """Compose the outbound URL from the resolved destination and the rewritten path."""
        url = f"{resolution.destination.url}{resolution.path}"
        query = client_request.query_string.decode('latin-1') if client_request.query_string else ''
        if query:
            url += f"?{query}"
        return url

    def forward_request(self, client_request: Request, resolution: Resolution) -> Response:
        """Forward the request to the resolved destination."""
        url = self.build_url(client_request, resolution)
        headers = self._prepare_headers(dict(client_request.headers), client_request.remote_addr)

        self.logger.info(f"Proxying request to {resolution.destination.netloc}{resolution.path}")

        try:
            response = requests.request(
                method=client_request.method,
                url=url,
                headers=headers,
                data=client_request.get_data(),
                timeout=self.timeout,
                allow_redirects=False,
                stream=True  # Enable streaming for large responses
            )

            # Prepare response headers
            response_headers = self._prepare_response_headers(response.raw.headers)

            # Stream the response back to the client
            return Response(
                stream_with_context(response.iter_content(chunk_size=8192)),
                status=response.status_code,
                headers=response_headers
            )

        except requests.RequestException as e:
            self.logger.error(f"Proxy error: {str(e)}")
            return Response("Proxy error occurred", status=500)

    def _prepare_headers(self, client_headers: Dict[str, str], remote_addr: str = None) -> Dict[str, str]:
        """Prepare headers for the backend request."""
        # Headers that should not be forwarded
        hop_by_hop_headers = {
            'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
            'te', 'trailers', 'transfer-encoding', 'upgrade'
        }

        headers = {
            k: v for k, v in client_headers.items()
            if k.lower() not in hop_by_hop_headers
        }

        # Only fill in a User-Agent when the client sent none at all
        if not any(k.lower() == 'user-agent' for k in headers):
            headers['User-Agent'] = self.user_agent

        if remote_addr:
            forwarded_for = headers.get('X-Forwarded-For', '')
            headers['X-Forwarded-For'] = f"{forwarded_for}, {remote_addr}" if forwarded_for else remote_addr

        headers['X-Forwarded-Proto'] = headers.get('X-Forwarded-Proto', 'http')
        headers['X-Forwarded-Host'] = headers.get('X-Forwarded-Host', client_headers.get('Host', ''))

        return headers

    def _prepare_response_headers(self, response_headers: Dict[str, str]) -> List[Tuple[str, str]]:
        """Prepare headers for the client response."""
        excluded_headers = {
            'content-encoding',
            'content-length',
            'transfer-encoding',
            'connection'
        }

        return [
            (name, value)
            for name, value in response_headers.items()
            if name.lower() not in excluded_headers
        ]
