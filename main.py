import grokgram

CORPUS = (
    "hello world how are you hello world again. the dog says hello hello and he "
    "says goodbye. cheese-its are delicious. hello how are goodbye. hello bye. hi "
    "byybye. hello world can we get cheese, it goes really well with everything."
)


def run_demo():
    print("=== Training a 3-gram model ===")

    model = grokgram.NgramLanguageModel(max_n=3, seed=1337)
    model.train(CORPUS)

    print('Predictions for "hello world":', model.predict("hello world"))
    print("Vocabulary size:", model.get_vocabulary_size())
    print("Vocabulary:", sorted(model.get_vocabulary()))

    for length in (3, 4, 5):
        print(f'Generated ({length}) from "hello":', model.generate_text("hello", length))

    print(model.explain_prediction("hello"))

    test_data = [
        {"input": "hello world", "reference": "hello world how"},
        {"input": "world how", "reference": "world how are"},
    ]
    print("Evaluation results:", model.evaluate(test_data))
    print("Attention for 'hello world how':", model.attention_weights("hello world how").weights)

    model.summary()


if __name__ == "__main__":
    run_demo()
