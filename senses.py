# senses.py
# Input and output slot layout of the bird brain.

from enum import IntEnum
from typing import List, Sequence

NUM_QUALITIES = 20


class Quality(IntEnum):
    """Qualities an object can evoke. A focused object's evocations fill FocusEvokes."""
    Death = 0
    Suffering = 1
    Famine = 2
    Deceit = 3
    Divine = 4
    Curiosity = 5
    Cowardice = 6
    Company = 7
    Power = 8
    Wealth = 9
    Magic = 10
    Combat = 11
    Development = 12
    Confinement = 13
    Gathering = 14
    Nature = 15
    Crafts = 16
    Destiny = 17
    Legacy = 18
    Unknowable = 19


class Perception(IntEnum):
    Clock = 0
    Health = 1
    DeltaHealth = 2
    Hunger = 3
    DeltaHunger = 4
    SocietyHoming = 5
    SquawkMemory = 6
    GrabbedMemory = 7
    PunchedMemory = 8
    FocusDistance = 9
    FocusDirection = 10
    FocusHoming = 11
    FocusEvokes = 12  # must stay last, spans NUM_QUALITIES slots


class Action(IntEnum):
    MoveZ = 0
    MoveX = 1
    Rotate = 2
    Squawk = 3
    Eat = 4
    Punch = 5
    Jump = 6
    Crouch = 7
    Use = 8
    Drop = 9
    Kiss = 10
    Birth = 11
    Heal = 12


BIRD_INPUT_NUM = Perception.FocusEvokes + NUM_QUALITIES  # 32
BIRD_OUTPUT_NUM = 10

# Outputs that drive the body each tick
INTENT_ACTIONS = (
    Action.MoveZ,
    Action.MoveX,
    Action.Rotate,
    Action.Punch,
    Action.Jump,
    Action.Crouch,
    Action.Use,
    Action.Drop,
)


def bird_layer_sizes(hidden: Sequence[int] = (16,)) -> List[int]:
    """
    Layer sizes for a bird brain. Every size gets one extra slot for the bias
    unit, so the input and output slots above keep their indices.
    """
    return [BIRD_INPUT_NUM + 1] + [int(h) + 1 for h in hidden] + [BIRD_OUTPUT_NUM + 1]
