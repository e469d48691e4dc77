"""Example machines: echo, forward, fizzbuzz, switch, useless, family, pubsub, hierarchy and timing."""