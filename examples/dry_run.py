"""
Dry run of every stack variant.

This demonstrates:
1. Building the resource graph for a configuration
2. Inspecting nodes, edges and creation order
3. Materializing the graph with the in-memory engine to see the boot script
"""

from fsx_stack import App, FsxS3Stack, InMemoryEngine, StackConfig, Variant

app = App()
for variant in Variant:
    FsxS3Stack(app, f"FsxS3-{variant.value}", StackConfig(variant=variant))

FsxS3Stack(app, "FsxS3-hpc-ubuntu", StackConfig(ubuntu=True, variant=Variant.HPC))

print(f"✓ Registered {len(app.list_stacks())} stacks")
for stack_id in app.list_stacks():
    graph = app.get_stack(stack_id).graph
    print(f"  {stack_id}: {' -> '.join(graph.dependency_order())}")

results = app.deploy(InMemoryEngine())

print("\nBoot script of the Ubuntu HPC stack")
print("=" * 60)
print(results["FsxS3-hpc-ubuntu"].user_data["Instance"])

print("Outputs")
print("=" * 60)
for stack_id, stack in results.items():
    print(f"  {stack_id}: {stack.outputs}")
