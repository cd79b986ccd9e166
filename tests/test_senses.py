import numpy as np

from brain import Network
from config import NetConfig
from senses import (BIRD_INPUT_NUM, BIRD_OUTPUT_NUM, INTENT_ACTIONS, NUM_QUALITIES,
                    Action, Perception, Quality, bird_layer_sizes)


def test_slot_counts():
    assert BIRD_INPUT_NUM == 32
    assert BIRD_OUTPUT_NUM == 10
    assert len(Quality) == NUM_QUALITIES
    assert Perception.FocusEvokes + NUM_QUALITIES == BIRD_INPUT_NUM
    assert all(a < BIRD_OUTPUT_NUM for a in INTENT_ACTIONS)


def test_bird_layer_sizes_reserve_bias_slots():
    assert bird_layer_sizes() == [33, 17, 11]
    assert bird_layer_sizes((8, 4)) == [33, 9, 5, 11]


def test_bird_brain_round_trip():
    net = Network(bird_layer_sizes(), NetConfig(seed=42))
    net.perceive(Perception.Health, 0.8)
    net.perceive(Perception.Hunger, 0.3)
    evokes = np.zeros(NUM_QUALITIES)
    evokes[Quality.Company] = 1.0
    net.perceive_span(Perception.FocusEvokes, evokes)
    assert net.value_at_neuron(0, Perception.FocusEvokes + Quality.Company) == 1.0
    assert net.value_at_neuron(0, BIRD_INPUT_NUM) == 1.0

    net.think()
    intent = net.intent()
    assert set(intent) == {a.name for a in INTENT_ACTIONS}
    assert all(-1.0 <= v <= 1.0 for v in intent.values())


def test_intent_skips_actions_the_network_cannot_produce():
    net = Network([3, 4, 3], NetConfig(seed=0))
    net.think()
    assert set(net.intent()) == {Action.MoveZ.name, Action.MoveX.name}
