import sys
import logging
import argparse

import capreg.exc as c_exc
import capreg.common as c_common
import capreg.registry as c_registry

import capreg.lib.ref as c_ref
import capreg.lib.output as c_output
import capreg.lib.msgpack as c_msgpack

import capreg.models.animals as c_animals

logger = logging.getLogger(__name__)

defscenario = '''
- {op: create, type: 'zoo:cat', props: {name: ''}, owner: alice, as: c1}
- {op: toIfaceRef, ref: c1, iface: 'zoo:animal', as: a1}
- {op: invoke, ref: a1, oper: makeSound, caller: alice}
- {op: invoke, ref: a1, oper: makeSound, caller: bob, expect: AuthorizationError}
- {op: invoke, ref: a1, oper: assignName, args: {name: Fluffy}, caller: alice, as: a2}
- {op: fromIfaceRef, ref: a1, type: 'zoo:cat'}
- {op: resolveView, ref: a1}
- {op: resolveView, ref: a2}
- {op: create, type: 'zoo:dog', props: {name: Rex}, owner: alice, as: d1}
- {op: toIfaceRef, ref: d1, iface: 'zoo:pet', expect: ConformanceError}
- {op: query, iface: 'zoo:animal', actor: alice}
'''

def _getRef(refs, name):
    ref = refs.get(name)
    if ref is None:
        raise c_exc.BadArg(mesg=f'No reference named {name} in the scenario.', name=name)
    return ref

def runStep(regy, refs, step):
    '''
    Execute a single scenario step and return its result.
    '''
    if not isinstance(step, dict):
        raise c_exc.BadArg(mesg=f'Scenario steps must be mappings: {step!r}', step=step)

    oper = step.get('op')

    if oper == 'create':
        return regy.create(step.get('type'), step.get('props', {}), step.get('owner'))

    if oper == 'toIfaceRef':
        return regy.toIfaceRef(_getRef(refs, step.get('ref')), step.get('iface'))

    if oper == 'coerceRef':
        return regy.coerceRef(_getRef(refs, step.get('ref')), step.get('name'))

    if oper == 'fromIfaceRef':
        return regy.fromIfaceRef(_getRef(refs, step.get('ref')), step.get('type'))

    if oper == 'resolveView':
        return regy.resolveView(_getRef(refs, step.get('ref')))

    if oper == 'fetch':
        return regy.fetch(_getRef(refs, step.get('ref')))

    if oper == 'invoke':
        ref = _getRef(refs, step.get('ref'))
        return regy.invoke(ref, step.get('oper'), step.get('args'), step.get('caller'))

    if oper == 'query':
        return [(str(ref), view) for ref, view in regy.queryByIface(step.get('iface'), step.get('actor'))]

    raise c_exc.BadArg(mesg=f'Unknown scenario operation: {oper}', op=oper)

def runScenario(regy, steps, outp):
    '''
    Run a list of scenario steps, printing each result.

    Returns:
        int: The number of steps which failed unexpectedly.
    '''
    refs = {}
    fails = 0

    for indx, step in enumerate(steps):

        if not isinstance(step, dict):
            fails += 1
            outp.printf(f'[{indx}] ERROR invalid step: {step!r}')
            continue

        oper = step.get('op')
        expect = step.get('expect')

        try:
            retn = runStep(regy, refs, step)

        except c_exc.CapErr as e:

            if e.errname == expect:
                outp.printf(f'[{indx}] {oper}: raised {e.errname} (expected)')
                continue

            fails += 1
            outp.printf(f'[{indx}] {oper}: ERROR {e.errname}: {e.get("mesg")}')
            continue

        if expect is not None:
            fails += 1
            outp.printf(f'[{indx}] {oper}: ERROR expected {expect} but got {retn!r}')
            continue

        if (name := step.get('as')) is not None:
            refs[name] = retn

        if isinstance(retn, c_ref.Ref):
            retn = f'{retn.kind} {retn.name} {retn.iden}'

        outp.printf(f'[{indx}] {oper}: {retn}')

    return fails

def getArgParser():
    pars = argparse.ArgumentParser(prog='capreg.tools.zoo', description='Run a scenario against a zoo registry.')
    pars.add_argument('--scenario', default=None, help='A yaml file containing a list of scenario steps.')
    pars.add_argument('--log-level', default=None, help='Specify the log level.')
    pars.add_argument('--structured-logging', default=False, action='store_true',
                      help='Use structured (jsonl) logging.')
    pars.add_argument('--no-trace', default=False, action='store_true',
                      help='Disable registry trace log lines.')
    pars.add_argument('--config', default=None,
                      help='A yaml file of registry configuration options.')
    pars.add_argument('--save-events', default=None,
                      help='Save the msgpack encoded registry events to a file after the scenario runs.')
    pars.add_argument('--show-events', default=None,
                      help='Print the events from a file written by --save-events and exit.')
    return pars

def showEvents(path, outp):
    '''
    Print the (offs, (evnt, info)) tuples from a saved event file.
    '''
    with open(c_common.genpath(path), 'rb') as fd:
        for offs, (evnt, info) in c_msgpack.iterfd(fd):
            outp.printf(f'{offs} {evnt} {info.get("type")} {info.get("iden")} by {info.get("actor")}')

def main(argv, outp=c_output.stdout):

    pars = getArgParser()
    opts = pars.parse_args(argv)

    c_common.setlogging(logger, defval=opts.log_level, structlog=opts.structured_logging)

    if opts.show_events is not None:
        showEvents(opts.show_events, outp)
        return 0

    if opts.scenario is not None:
        steps = c_common.yamlload(opts.scenario)
        if steps is None:
            outp.printf(f'No scenario file found at {opts.scenario}')
            return 1
    else:
        steps = c_common.yamlloads(defscenario)

    if not isinstance(steps, list):
        outp.printf('A scenario must be a list of steps.')
        return 1

    conf = {}
    if opts.no_trace:
        conf['trace'] = False

    regy = c_registry.Registry(c_animals.getZooModel(), conf=conf, confpath=opts.config)

    fails = runScenario(regy, steps, outp)

    if opts.save_events is not None:
        with open(c_common.genpath(opts.save_events), 'wb') as fd:
            fd.write(regy.exportEvents())
        outp.printf(f'Saved {regy.nextoffs} events to {opts.save_events}')

    if fails:
        outp.printf(f'{fails} step(s) failed.')
        return 1

    return 0

if __name__ == '__main__':  # pragma: no cover
    sys.exit(main(sys.argv[1:]))
