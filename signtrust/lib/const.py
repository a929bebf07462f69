import logging

# Logging related constants
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s ' \
             '[%(filename)s:%(funcName)s:%(threadName)s:%(processName)s]'
LOG_LEVEL_CHOICES = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}
LOG_LEVEL_INVERSE_CHOICES = {v: k for k, v in LOG_LEVEL_CHOICES.items()}

# time constants
day = 1
year = day * 365

# Key and certificate defaults
KEY_BITS = 3072
KEY_EXPONENT = 65537
CERT_DAYS = year
DIGEST = 'sha256'

# Well known file names
PUBLIC_CERT_NAME = 'gem-public_cert.pem'
PRIVATE_KEY_NAME = 'gem-private_key.pem'
TRUST_DIR_NAME = 'trust'

# Modes for files we write
KEY_FILE_MODE = 0o600
CERT_FILE_MODE = 0o644
