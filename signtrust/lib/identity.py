'''
Signing identities: building new ones and loading them from disk.
'''
import os
import logging

from typing import Tuple

import regex

import cryptography.x509 as c_x509

import signtrust.exc as s_exc
import signtrust.common as s_common
import signtrust.lib.const as s_const
import signtrust.lib.backend as s_backend

logger = logging.getLogger(__name__)

emailre = regex.compile(r'^[^@\s]+@[^@\s]+$')

Identity = Tuple[c_x509.Certificate, s_backend.Pkey, str, str]

def isEmail(name: str) -> bool:
    return emailre.match(name) is not None

def reqValidName(name):
    '''
    Require that an identity name can be used as a certificate common name.

    Raises:
        BadArg: If the name is not a 1-64 byte (utf8) string.
    '''
    if not isinstance(name, str):
        raise s_exc.BadArg(mesg=f'Identity must be a string, got {name!r}', name=name)

    size = len(name.encode('utf-8'))
    if not 1 <= size <= 64:
        mesg = f'Identity values must be between 1-64 bytes when utf8-encoded. got name={name}, len={size}'
        raise s_exc.BadArg(mesg=mesg, name=name)

    return name

def loadCertPath(path, backend=None) -> c_x509.Certificate:
    '''
    Load a PEM encoded certificate from a file.

    Raises:
        NoSuchFile: If the file does not exist.
        BadCertBytes: If the file is not a certificate.
    '''
    if backend is None:
        backend = s_backend.Backend()

    byts = s_common.reqbytes(path)
    try:
        return backend.loadCertByts(byts)
    except s_exc.BadCertBytes as e:
        e.set('path', s_common.genpath(path))
        raise

def loadKeyPath(path, backend=None) -> s_backend.Pkey:
    '''
    Load a PEM encoded private key from a file.

    Raises:
        NoSuchFile: If the file does not exist.
        BadKeyBytes: If the file is not a private key.
        NotPrivateKey: If the file holds a public key.
    '''
    if backend is None:
        backend = s_backend.Backend()

    byts = s_common.reqbytes(path)
    try:
        return backend.loadKeyByts(byts)
    except (s_exc.BadKeyBytes, s_exc.NotPrivateKey) as e:
        e.set('path', s_common.genpath(path))
        raise

def getDefaultCertPath(home=None) -> str:
    if home is None:
        home = s_common.gemhome
    return s_common.genpath(home, s_const.PUBLIC_CERT_NAME)

def getDefaultKeyPath(home=None) -> str:
    if home is None:
        home = s_common.gemhome
    return s_common.genpath(home, s_const.PRIVATE_KEY_NAME)

def loadDefaultCert(home=None, backend=None) -> c_x509.Certificate:
    '''
    Load the default signing certificate from the home directory.

    Args:
        home (str): The directory to load from. Defaults to ``~/.gem``.

    Raises:
        NoSuchFile: If there is no default certificate.
        BadCertBytes: If the default certificate is not valid.
    '''
    path = getDefaultCertPath(home=home)
    cert = loadCertPath(path, backend=backend)
    logger.debug('Loaded default signing certificate from %s', path)
    return cert

def loadDefaultKey(home=None, backend=None) -> s_backend.Pkey:
    '''
    Load the default signing private key from the home directory.

    Args:
        home (str): The directory to load from. Defaults to ``~/.gem``.

    Raises:
        NoSuchFile: If there is no default private key.
        BadKeyBytes: If the default private key is not valid.
        NotPrivateKey: If the default key file holds a public key.
    '''
    path = getDefaultKeyPath(home=home)
    pkey = loadKeyPath(path, backend=backend)
    logger.debug('Loaded default signing key from %s', path)
    return pkey

def buildIdentity(name: str, key=None, dirn=None, backend=None) -> Identity:
    '''
    Build a private key and a self-signed certificate for name.

    Args:
        name: The identity (typically an email address) to bind to the certificate.
        key: An existing private key to use instead of generating a new one.
        dirn: The directory to save the files in. Defaults to the current directory.
        backend: The crypto backend.

    Examples:
        Build an identity for alice::

            cert, pkey, certpath, keypath = buildIdentity('alice@example.com')

    Notes:
        The key is saved as ``gem-private_key.pem`` with mode 0600 and the
        certificate is saved as ``gem-public_cert.pem``.  Existing files are
        overwritten.

    Returns:
        Tuple containing the certificate, private key, certificate path and key path.
    '''
    reqValidName(name)

    if backend is None:
        backend = s_backend.Backend()

    if dirn is None:
        dirn = os.getcwd()

    if key is None:
        key = backend.genPrivKey()

    cert = backend.selfSignCert(name, key, email=isEmail(name))

    keypath = s_common.putbytes(os.path.join(dirn, s_const.PRIVATE_KEY_NAME), backend.pkeyToByts(key),
                                mode=s_const.KEY_FILE_MODE)
    certpath = s_common.putbytes(os.path.join(dirn, s_const.PUBLIC_CERT_NAME), backend.certToByts(cert),
                                 mode=s_const.CERT_FILE_MODE)

    logger.info('Built identity %s: cert=%s key=%s', name, certpath, keypath)
    return cert, key, certpath, keypath
