'''
This contains the core test helper code used in signtrust.

The core class, signtrust.tests.utils.SigTest is a subclass of unittest.TestCase,
with several wrapper functions to allow for easier calls to assert* functions,
with less typing.  There are also signtrust specific helpers for making
temporary trust directories, identities and certificates.
'''
import io
import os
import shutil
import logging
import tempfile
import unittest
import threading
import contextlib

import unittest.mock as mock

import cryptography.x509 as c_x509
import cryptography.hazmat.primitives.hashes as c_hashes

import signtrust.exc as s_exc
import signtrust.common as s_common
import signtrust.lib.output as s_output
import signtrust.lib.backend as s_backend
import signtrust.lib.identity as s_identity
import signtrust.lib.trustdir as s_trustdir

# smaller keys keep the tests fast
TEST_KEY_BITS = 2048

class TstOutPut(s_output.OutPutStr):

    def expect(self, substr, throw=True):
        '''
        Check if a string is present in the messages captured by the OutPutStr object.

        Args:
            substr (str): String to check for the existence of.
            throw (bool): If True, a missing substr results in a Exception being thrown.

        Returns:
            bool: True if the string is present; False if the string is not present and throw is False.
        '''
        outs = str(self)

        if outs.find(substr) == -1:
            if throw:
                mesg = 'TestOutPut.expect(%s) not in %s' % (substr, outs)
                raise s_exc.SigErr(mesg=mesg)
            return False
        return True

    def lines(self):
        return str(self).splitlines()

    def clear(self):
        self.mesgs.clear()

class StreamEvent(io.StringIO, threading.Event):
    '''
    A combination of a io.StringIO object and a threading.Event object.
    '''
    def __init__(self, *args, **kwargs):
        io.StringIO.__init__(self, *args, **kwargs)
        threading.Event.__init__(self)
        self.mesg = ''

    def setMesg(self, mesg):
        '''
        Clear the internal event and set a new message that is used to set the event.

        Args:
            mesg (str): The string to monitor for.

        Returns:
            None
        '''
        self.mesg = mesg
        self.clear()

    def write(self, s):
        io.StringIO.write(self, s)
        if self.mesg and self.mesg in s:
            self.set()

class SigTest(unittest.TestCase):

    def getTestOutp(self):
        '''
        Get a Output instance with a expects() function.

        Returns:
            TstOutPut: A TstOutPut instance.
        '''
        return TstOutPut()

    def getTestBackend(self):
        return s_backend.Backend(numbits=TEST_KEY_BITS)

    def getTestCert(self, name, dirn=None, backend=None):
        '''
        Build a self-signed identity in a directory and return it.

        Returns:
            tuple: The certificate, key, certificate path and key path.
        '''
        if backend is None:
            backend = self.getTestBackend()
        return s_identity.buildIdentity(name, dirn=dirn, backend=backend)

    def getTestSubjCert(self, attrs, backend=None):
        '''
        Build a self-signed certificate with a subject made from (oid, value) tuples.
        '''
        if backend is None:
            backend = self.getTestBackend()

        pkey = backend.genPrivKey()
        subj = c_x509.Name([c_x509.NameAttribute(oid, valu) for (oid, valu) in attrs])
        builder = backend._genCertBuilder(subj, pkey.public_key()).issuer_name(subj)
        return builder.sign(private_key=pkey, algorithm=c_hashes.SHA256())

    @contextlib.contextmanager
    def getTestDir(self, chdir=False, startdir=None) -> contextlib.AbstractContextManager[str, None, None]:
        '''
        Get a temporary directory for test purposes.
        This destroys the directory afterwards.

        Args:
            chdir (boolean): If true, chdir the current process to that directory. This is undone when the context
                             manager exits.
            startdir (str): The directory under which to place the temporary directory

        Returns:
            str: The path to a temporary directory.
        '''
        curd = os.getcwd()
        tempdir = tempfile.mkdtemp(dir=startdir)

        try:

            if chdir:
                os.chdir(tempdir)

            yield tempdir

        finally:

            if chdir:
                os.chdir(curd)

            shutil.rmtree(tempdir, ignore_errors=True)

    @contextlib.contextmanager
    def getTestTrustDir(self, dirn):
        '''
        Patch the default trust directory to a path inside dirn.

        Returns:
            s_trustdir.TrustDir: A TrustDir backed by the patched default directory.
        '''
        path = os.path.join(dirn, 'trust')
        with mock.patch('signtrust.lib.trustdir.defdir', path):
            yield s_trustdir.TrustDir(backend=self.getTestBackend())

    @contextlib.contextmanager
    def setGemHome(self, dirn):
        '''
        Sets s_common.gemhome to a specific directory and then unsets it afterwards.
        '''
        oldhome = s_common.gemhome
        try:
            s_common.gemhome = dirn
            yield None
        finally:
            s_common.gemhome = oldhome

    @contextlib.contextmanager
    def getLoggerStream(self, logname, mesg=''):
        '''
        Get a logger and attach a io.StringIO object to the logger to capture log messages.

        Args:
            logname (str): Name of the logger to get.
            mesg (str): A string which, if provided, sets the StreamEvent event if a message
            containing the string is written to the log.

        Examples:
            Do an action and get the stream of log messages to check against::

                with self.getLoggerStream('signtrust.lib.trustdir') as stream:
                    # Do something that triggers a log message
                    doSomething()

                stream.seek(0)
                mesgs = stream.read()
                # Do something with messages

        Yields:
            StreamEvent: A StreamEvent object
        '''
        stream = StreamEvent()
        stream.setMesg(mesg)
        handler = logging.StreamHandler(stream)
        slogger = logging.getLogger(logname)
        slogger.addHandler(handler)
        level = slogger.level
        slogger.setLevel('DEBUG')
        try:
            yield stream
        finally:
            slogger.removeHandler(handler)
            slogger.setLevel(level)

    @contextlib.contextmanager
    def setTstEnvars(self, **props):
        '''
        Set Environment variables for the purposes of running a specific test.

        Args:
            **props: A kwarg list of envars to set. The values set are run
            through str() to ensure we're setting strings.

        Yields:
            None. Upon exiting, envars are either removed from os.environ or
            reset to their previous values.
        '''
        old_data = {}
        pop_data = set()
        for key, valu in props.items():
            v = str(valu)
            oldv = os.environ.get(key, None)
            if oldv:
                if oldv == v:
                    continue
                else:
                    old_data[key] = oldv
                    os.environ[key] = v
            else:
                pop_data.add(key)
                os.environ[key] = v

        try:
            yield None
        finally:
            for key in pop_data:
                del os.environ[key]
            for key, valu in old_data.items():
                os.environ[key] = valu

    @contextlib.contextmanager
    def setUmask(self, mask):
        oldmask = os.umask(mask)
        try:
            yield None
        finally:
            os.umask(oldmask)

    def eq(self, x, y, msg=None):
        '''
        Assert X is equal to Y
        '''
        self.assertEqual(x, y, msg=msg)

    def ne(self, x, y):
        '''
        Assert X is not equal to Y
        '''
        self.assertNotEqual(x, y)

    def true(self, x, msg=None):
        '''
        Assert X is True
        '''
        self.assertTrue(x, msg=msg)

    def false(self, x, msg=None):
        '''
        Assert X is False
        '''
        self.assertFalse(x, msg=msg)

    def nn(self, x, msg=None):
        '''
        Assert X is not None
        '''
        self.assertIsNotNone(x, msg=msg)
        return x

    def none(self, x, msg=None):
        '''
        Assert X is None
        '''
        self.assertIsNone(x, msg=msg)

    def raises(self, *args, **kwargs):
        '''
        Assert a function raises an exception.
        '''
        return self.assertRaises(*args, **kwargs)

    def isin(self, member, container, msg=None):
        '''
        Assert a member is inside of a container.
        '''
        self.assertIn(member, container, msg=msg)

    def notin(self, member, container, msg=None):
        '''
        Assert a member is not inside of a container.
        '''
        self.assertNotIn(member, container, msg=msg)

    def len(self, x, obj, msg=None):
        '''
        Assert that the length of an object is equal to X
        '''
        self.eq(x, len(obj), msg=msg)
