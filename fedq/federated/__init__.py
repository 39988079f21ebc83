"""Federated learning for tabular FedQ agents.

Tabular models are plain dicts of Q-vectors, so each client exchanges
its whole Q-table; nothing about its trajectories leaves the client.

Package:
    - aggregation: FedAvg over the union of client states
    - delta: per-round movement and convergence detection
    - serialization: versioned JSON model encode/decode
    - triggers: episode-interval and reward-plateau predicates
    - client: local agent + environment
    - manager: federation rounds (snapshot, merge, redistribute)
    - trainer: multi-client training loop
"""
