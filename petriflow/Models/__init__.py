"""Ready-made nets: knapsack selection and tic-tac-toe move scoring."""
