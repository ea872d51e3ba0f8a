"""
Example: Using find_sample_size to determine required sample size for target power
"""

from ri_power import PowerSim

# Example 1: Welch t-test, 80% power
print("Example 1: Analytic test")
print("-" * 50)
p = PowerSim(test_strategy="analytic", variants=1, nsim=500, alpha=0.05, seed=42)

result = p.find_sample_size(
    target_power=0.80,
    baseline=[10.0],
    effect=[1.5],
    standard_deviation=[3.0, 3.5],
    min_sample_size=40,
    max_sample_size=2000,
    tolerance=0.02,
    step_size=40,
)

print(result)
print()

# Example 2: same design, randomization inference with 200 permutations per experiment
print("Example 2: Randomization inference")
print("-" * 50)
p2 = PowerSim(test_strategy="randomization", permutation_count=200, variants=1, nsim=300, seed=42, threads=4)

result2 = p2.find_sample_size(
    target_power=0.80,
    baseline=[10.0],
    effect=[1.5],
    standard_deviation=[3.0, 3.5],
    min_sample_size=40,
    max_sample_size=2000,
    tolerance=0.02,
    step_size=40,
)

print(result2)
print()

# Example 3: two variants, 30/35/35 allocation, powered for the smaller effect
print("Example 3: Multiple variants")
print("-" * 50)
p3 = PowerSim(test_strategy="analytic", variants=2, comparisons=[(0, 1), (0, 2)], correction="holm", nsim=300, seed=42)

result3 = p3.find_sample_size(
    target_power=0.80,
    baseline=[10.0],
    effect=[1.0, 2.0],
    standard_deviation=[3.0],
    allocation_ratio=[0.3, 0.35, 0.35],
    comparison=(0, 1),
    min_sample_size=60,
    max_sample_size=3000,
    step_size=60,
)

print(result3)
