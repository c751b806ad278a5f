'''
This contains the core test helper code used in capreg.

The core class, capreg.tests.utils.CapTest is a subclass of unittest.TestCase,
with several wrapper functions to allow for easier calls to assert* functions,
with less typing.  There are also capreg specific helpers to construct a
Registry loaded with the zoo model.

Since CapTest is built from unittest.TestCase, the use of CapTest is
compatible with the unittest and pytest frameworks.
'''
import io
import os
import types
import shutil
import tempfile
import logging
import unittest
import threading
import contextlib

import regex

import capreg.exc as c_exc
import capreg.datamodel as c_datamodel
import capreg.registry as c_registry

import capreg.lib.output as c_output

import capreg.models.animals as c_animals

logger = logging.getLogger(__name__)

def norm(z):
    if isinstance(z, (list, tuple)):
        return tuple([norm(n) for n in z])
    if isinstance(z, dict):
        return {norm(k): norm(v) for (k, v) in z.items()}
    return z

def deguidify(x):
    return regex.sub('[0-9a-f]{32}', '*' * 32, x)

class TstOutPut(c_output.OutPutStr):

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
                raise c_exc.CapErr(mesg=mesg)
            return False
        return True

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

class CapTest(unittest.TestCase):

    def skip(self, mesg):
        raise unittest.SkipTest(mesg)

    def getTestFilePath(self, *names):
        import capreg.tests.__init__
        path = os.path.dirname(capreg.tests.__init__.__file__)
        return os.path.join(path, 'files', *names)

    @contextlib.contextmanager
    def getTestDir(self):
        '''
        Get a temporary directory for test purposes.
        This destroys the directory afterwards.

        Returns:
            str: The path to a temporary directory.
        '''
        tempdir = tempfile.mkdtemp()
        try:
            yield tempdir
        finally:
            shutil.rmtree(tempdir, ignore_errors=True)

    def getTestModel(self, mods=None):
        '''
        Get an unlocked Model with the zoo model and any additional model definitions loaded.
        '''
        modl = c_animals.getZooModel()
        if mods is not None:
            modl.addDataModels(mods)
        return modl

    def getTestRegistry(self, conf=None, mods=None, modl=None):
        '''
        Get a Registry for the zoo model.

        Args:
            conf (dict): Optional registry configuration.
            mods (list): Optional additional (name, mdef) model definitions.
            modl (capreg.datamodel.Model): Optional model to use instead of the zoo model.

        Returns:
            capreg.registry.Registry: A new Registry with trace logging disabled by default.
        '''
        if conf is None:
            conf = {'trace': False}

        if modl is None:
            modl = self.getTestModel(mods=mods)

        return c_registry.Registry(modl, conf=conf)

    def getEmptyModel(self):
        return c_datamodel.Model()

    def getTestOutp(self):
        '''
        Get a Output instance with a expects() function.

        Returns:
            TstOutPut: A TstOutPut instance.
        '''
        return TstOutPut()

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

                with self.getLoggerStream('capreg.registry') as stream:
                    regy.create('zoo:cat', {}, 'alice')

                stream.seek(0)
                mesgs = stream.read()

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

    def eq(self, x, y, msg=None):
        '''
        Assert X is equal to Y
        '''
        self.assertEqual(norm(x), norm(y), msg=msg)

    def ne(self, x, y):
        '''
        Assert X is not equal to Y
        '''
        self.assertNotEqual(norm(x), norm(y))

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

    def sorteq(self, x, y, msg=None):
        '''
        Assert two sorted sequences are the same.
        '''
        return self.eq(sorted(x), sorted(y), msg=msg)

    def isinstance(self, obj, cls, msg=None):
        '''
        Assert a object is the instance of a given class or tuple of classes.
        '''
        self.assertIsInstance(obj, cls, msg=msg)

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
        if isinstance(obj, types.GeneratorType):
            obj = list(obj)

        self.eq(x, len(obj), msg=msg)
