'''
A model of owned animals implementing a shared animal interface.
'''
import capreg.datamodel as c_datamodel

def _animalView(props):
    return {
        'owner': props.get('owner'),
        'name': props.get('name'),
    }

def _catPetView(props):
    return {
        'owner': props.get('owner'),
        'name': props.get('name'),
        'species': 'cat',
    }

def _catMakeSound(exer):
    return f'Miaow! I am a cat belonging to {exer.view["owner"]}'

def _dogMakeSound(exer):
    return f'Woof! I am a dog belonging to {exer.view["owner"]}'

def _assignName(exer, name):
    props = dict(exer.props)
    props['name'] = name
    ref = exer.create(exer.etype.name, props)
    return exer.toIfaceRef(ref, exer.iface.name)

def _petDescribe(exer):
    view = exer.view
    name = view.get('name') or 'An unnamed'
    return f'{name} {view.get("species")} owned by {view.get("owner")}'

_animalProps = (
    ('owner', ('actor', {}), {
        'doc': 'The actor who owns the animal.'}),
    ('name', ('str', {}), {
        'defval': '',
        'doc': 'The name given to the animal by its owner.'}),
    ('observers', ('array', {'type': 'actor'}), {
        'defval': (),
        'doc': 'Actors which may see the animal.'}),
)

zoomodel = {

    'interfaces': (

        ('zoo:animal', {
            'doc': 'An animal which belongs to an owner.',
            'controller': 'owner',
            'view': (
                ('owner', ('actor', {}), {
                    'doc': 'The owner who controls the animal.'}),
                ('name', ('str', {}), {
                    'doc': 'The name of the animal.'}),
            ),
            'opers': (
                ('makeSound', {
                    'consuming': False,
                    'doc': 'Return the sound the animal makes.'}),
                ('assignName', {
                    'consuming': True,
                    'args': (
                        ('name', ('str', {}), {}),
                    ),
                    'doc': 'Replace the animal with a renamed successor.'}),
            ),
        }),

        ('zoo:pet', {
            'doc': 'A household pet. Every pet is also an animal.',
            'interfaces': ('zoo:animal',),
            'controller': 'owner',
            'view': (
                ('owner', ('actor', {}), {}),
                ('name', ('str', {}), {}),
                ('species', ('str', {'lower': True}), {}),
            ),
            'opers': (
                ('describe', {
                    'consuming': False,
                    'doc': 'Return a short description of the pet.'}),
            ),
        }),
    ),

    'entities': (

        ('zoo:cat', {
            'doc': 'A cat.',
            'owner': 'owner',
            'observers': 'observers',
            'interfaces': (
                ('zoo:animal', {
                    'view': _animalView,
                    'opers': {
                        'makeSound': _catMakeSound,
                        'assignName': _assignName,
                    },
                }),
                ('zoo:pet', {
                    'view': _catPetView,
                    'opers': {
                        'describe': _petDescribe,
                    },
                }),
            ),
        }, _animalProps),

        ('zoo:dog', {
            'doc': 'A dog.',
            'owner': 'owner',
            'observers': 'observers',
            'interfaces': (
                ('zoo:animal', {
                    'view': _animalView,
                    'opers': {
                        'makeSound': _dogMakeSound,
                        'assignName': _assignName,
                    },
                }),
            ),
        }, _animalProps),
    ),
}

def getModelDefs():
    return (
        ('zoo', zoomodel),
    )

def getZooModel():
    '''
    Construct a capreg.datamodel.Model with the zoo model loaded.
    '''
    modl = c_datamodel.Model()
    modl.addDataModels(getModelDefs())
    return modl
