"""FedQ: federated tabular Q-learning.

Independent agents learn local Q-tables and periodically merge them
into a shared global model with federated averaging.

Package:
    - rl: Q-table, tabular agent, policies, KPI tracking, episode loop
    - federated: FedAvg merge, deltas, triggers, serialization, rounds
    - envs: environment contract and a reference grid world
"""

__version__ = "0.1.0"
