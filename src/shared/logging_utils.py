"""
Colored logging utilities for the OAuth2 trace client.

This module provides colored console logging with component identification,
timestamps, and message formatting so the redirect, exchange and downstream
calls of one flow can be followed in the terminal.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional
from urllib.parse import urlsplit, urlunsplit

from colorama import Fore, Style, init

init(autoreset=True)


# Keys whose values are never printed, not even partially
REDACTED_KEYS = ('password', 'secret', 'access_token', 'refresh_token', 'authorization')
# Keys whose values are shortened to a 10 character prefix
TRUNCATED_KEYS = ('code', 'state', 'token')


def _strip_query(url: Any) -> Any:
    """Drop the query string, which may carry a state value or a code."""
    if not isinstance(url, str) or "?" not in url:
        return url
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "...", ""))


class OAuthLogger:
    """
    Colored logger for OAuth2 message flows.

    Provides diagnostic logging with color coding, timestamps, and structured
    message formatting to help visualize the flow and debug provider issues.
    """

    def __init__(self, component_name: str):
        """
        Initialize OAuth logger for a specific component.

        Args:
            component_name: Name of the component (TRACE-CLIENT, PROVIDER, etc.)
        """
        self.component_name = component_name.upper()
        self.colors = self._get_component_colors()

        self.logger = logging.getLogger(f"oauth.{component_name.lower()}")
        self.logger.setLevel(logging.INFO)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def _get_component_colors(self) -> Dict[str, str]:
        """Get color scheme for different components and message types."""
        return {
            'TRACE-CLIENT': Fore.BLUE + Style.BRIGHT,
            'USER-BROWSER': Fore.CYAN + Style.BRIGHT,
            'PROVIDER': Fore.GREEN + Style.BRIGHT,
            'RESOURCE': Fore.YELLOW + Style.BRIGHT,
            'SYSTEM': Fore.MAGENTA + Style.BRIGHT,
            'ERROR': Fore.RED + Style.BRIGHT,
            'SUCCESS': Fore.GREEN + Style.BRIGHT,
            'INFO': Fore.CYAN,
            'HEADER': Fore.WHITE + Style.BRIGHT,
            'SEPARATOR': Fore.WHITE + Style.DIM,
            'RESET': Style.RESET_ALL
        }

    def _format_timestamp(self) -> str:
        """Format current timestamp for log messages."""
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sanitize sensitive data for logging.

        Access tokens and client secrets are redacted outright; codes and
        state values keep a short prefix so a flow can still be correlated.
        """
        sanitized = {}
        for key, value in data.items():
            key_lower = key.lower()

            if key_lower.endswith('url'):
                sanitized[key] = _strip_query(value)
            elif any(sensitive in key_lower for sensitive in REDACTED_KEYS):
                sanitized[key] = '[REDACTED]'
            elif any(partial in key_lower for partial in TRUNCATED_KEYS):
                if isinstance(value, str) and len(value) > 10:
                    sanitized[key] = f"{value[:10]}..."
                else:
                    sanitized[key] = value
            else:
                sanitized[key] = value

        return sanitized

    def _emit(self, line: str):
        self.logger.info(line)

    def log_oauth_message(self,
                          source: str,
                          destination: str,
                          message_type: str,
                          data: Dict[str, Any],
                          success: bool = True):
        """
        Log OAuth message with color coding and formatting.

        Args:
            source: Source component name
            destination: Destination component name
            message_type: Type of message (REQUEST, RESPONSE, etc.)
            data: Message data dictionary
            success: Whether the operation was successful
        """
        timestamp = self._format_timestamp()
        source_color = self.colors.get(source.upper(), self.colors['INFO'])
        dest_color = self.colors.get(destination.upper(), self.colors['INFO'])

        if not success:
            msg_color = self.colors['ERROR']
        elif message_type in ['RESPONSE', 'SUCCESS']:
            msg_color = self.colors['SUCCESS']
        else:
            msg_color = self.colors['INFO']

        self._emit(
            f"{self.colors['HEADER']}[{timestamp}] {source_color}{source}{self.colors['RESET']}"
            f" → {dest_color}{destination}{self.colors['RESET']}"
        )
        self._emit(f"{msg_color}{message_type}:{self.colors['RESET']}")

        for key, value in self._sanitize_data(data).items():
            self._emit(f"  {self.colors['INFO']}{key}:{self.colors['RESET']} {value}")

        self._emit(f"{self.colors['SEPARATOR']}{'-' * 60}{self.colors['RESET']}")

    def log_http_request(self,
                         method: str,
                         url: str,
                         destination: str,
                         params: Optional[Dict[str, Any]] = None):
        """
        Log an outbound HTTP request.

        Args:
            method: HTTP method
            url: Target URL
            destination: Component receiving the request
            params: Form data or other request details
        """
        request_data = {
            "method": method,
            "url": url
        }
        if params:
            request_data.update(params)

        self.log_oauth_message(
            source=self.component_name,
            destination=destination,
            message_type="HTTP-REQUEST",
            data=request_data
        )

    def log_error(self,
                  error_type: str,
                  message: str,
                  details: Optional[Dict[str, Any]] = None):
        """
        Log error messages with context.

        Args:
            error_type: Type of error
            message: Error message
            details: Additional error context
        """
        error_data = {
            "error_type": error_type,
            "message": message
        }

        if details:
            error_data.update(details)

        self.log_oauth_message(
            source=self.component_name,
            destination="ERROR-HANDLER",
            message_type="ERROR",
            data=error_data,
            success=False
        )

    def log_startup(self, host: str, port: int, additional_info: Optional[Dict[str, Any]] = None):
        """
        Log component startup information.

        Args:
            host: Interface the component listens on
            port: Port number the component is running on
            additional_info: Additional startup information
        """
        self._emit(f"{self.colors['SUCCESS']}{self.component_name} started on {host}:{port}{self.colors['RESET']}")
        if additional_info:
            for key, value in self._sanitize_data(additional_info).items():
                self._emit(f"   {key}: {value}")
        self._emit(f"{self.colors['SEPARATOR']}{'-' * 60}{self.colors['RESET']}")

