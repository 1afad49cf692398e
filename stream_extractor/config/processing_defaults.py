"""
Centralized configuration defaults for extraction operations.

This module defines the operational defaults used throughout the system. Every
setting is optional and independently defaulted: callers override individual keys
per extraction call, through STREAM_EXTRACTOR_* environment variables, or through
a settings file loaded by the ConfigManager.

Single Source of Truth: Change these values once; all modules automatically use updated defaults.
"""


class ExtractionDefaults:
    """
    Centralized operational configuration for XML, CSV and SOAP extraction.

    All values are defaults that can be overridden per call:
    - extractor.extract(source, {"encoding": "ISO-8859-1"})
    - csv_extractor.extract(source, {"delimiter": ";", "exceptions": False})
    """

    # XML structural parser
    ENCODING = "UTF-8"  # Document encoding used when the document does not declare one
    PARSER_OPTIONS = {
        "huge_tree": True,  # Tolerate documents beyond libxml2's conservative size/depth limits
        "no_network": True,  # Never fetch external resources while parsing
    }
    BACK_REFERENCE_MARKER = "#"  # Leading marker of a back-reference property expression
    DEFAULT_KEY = "default"  # Registration key used by the tabular adapter

    # CSV reader
    DELIMITER = ","
    ENCLOSURE = '"'
    ESCAPE = "\\"
    START_LINE = 0  # First row handed to the handler (zero-based)
    EXCEPTIONS = True  # Raise on a mapped column missing from a row
    AUTO_EOL = False  # Honour bare carriage-return line endings in files

    # SOAP transport
    SOAP_TIMEOUT = 30  # Request timeout in seconds
    SOAP_VERSION = "1.1"

    # Logging
    LOG_LEVEL = "WARNING"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export all defaults as a dictionary.

        Returns:
            Dictionary of all ExtractionDefaults class attributes.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if not key.startswith('_') and key.isupper()
        }

    @classmethod
    def log_summary(cls, logger=None):
        """
        Log a summary of all operational defaults.

        Args:
            logger: Optional logger instance. If None, prints to stdout.
        """
        config_dict = cls.to_dict()
        summary = "\n".join([f"  {key}: {value}" for key, value in sorted(config_dict.items())])
        message = f"Extraction Configuration Defaults:\n{summary}"

        if logger:
            logger.info(message)
        else:
            print(message)
